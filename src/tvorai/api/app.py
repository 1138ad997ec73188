"""FastAPI application factory.

The store handle and provider are built once per app and kept on
app.state; route dependencies read them from there. Nothing here is a
module-level singleton, so tests can pass isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from tvorai.config import Settings, configure_logging, get_settings
from tvorai.db.session import LedgerStore
from tvorai.ledger.errors import LedgerError
from tvorai.providers.base import GatewayError, ProviderBase
from tvorai.worker.keepalive import KeepaliveProbe

logger = logging.getLogger(__name__)


def get_store(request: Request) -> LedgerStore:
    """Dependency to get the ledger store."""
    return request.app.state.store


def get_provider(request: Request) -> ProviderBase:
    """Dependency to get the generation provider."""
    return request.app.state.provider


def get_app_settings(request: Request) -> Settings:
    """Dependency to get the settings the app was built with."""
    return request.app.state.settings


def build_provider(settings: Settings) -> ProviderBase:
    """Create the configured generation provider."""
    if settings.GENERATION_PROVIDER == "mock":
        from tvorai.providers.mock import MockProvider

        return MockProvider()

    from tvorai.providers.novita import NovitaProvider

    return NovitaProvider(
        api_key=settings.NOVITA_API_KEY,
        base_url=settings.NOVITA_BASE_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problems = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400, content={"error": "INVALID_REQUEST", "detail": problems}
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception(f"Store failure on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "DB_ERROR", "detail": "database operation failed"},
        )


def create_app(
    settings: Settings | None = None,
    store: LedgerStore | None = None,
    provider: ProviderBase | None = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        settings: Optional settings; read from the environment if omitted.
        store: Optional store handle; built from settings if omitted.
        provider: Optional generation provider; built from settings if omitted.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    owns_store = store is None
    store = store or LedgerStore.from_settings(settings)
    provider = provider or build_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.AUTO_CREATE_SCHEMA:
            store.init_schema()
        logger.info(f"DB ping OK: {store.ping()}")

        probe = None
        if settings.KEEPALIVE_INTERVAL_SECONDS > 0:
            probe = KeepaliveProbe(store, settings.KEEPALIVE_INTERVAL_SECONDS)
            probe.start()
        app.state.keepalive = probe
        try:
            yield
        finally:
            if probe is not None:
                probe.stop()
            provider.close()
            if owns_store:
                store.dispose()

    app = FastAPI(
        title="TvorAI API",
        description="Generation gateway and prepaid credit ledger",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.provider = provider
    app.state.keepalive = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    # Include routes
    from tvorai.api.routes import generation, health, ledger, webhooks

    app.include_router(health.router)
    app.include_router(ledger.router)
    app.include_router(webhooks.router)
    app.include_router(generation.router, prefix="/api")

    return app


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import os

    import uvicorn

    uvicorn.run(
        "tvorai.api.app:create_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
    )
