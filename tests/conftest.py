"""Shared pytest fixtures for tvorai tests."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from tvorai.config import Settings
from tvorai.db.session import LedgerStore
from tvorai.ledger.subscriptions import ingest_subscription
from tvorai.models.types import SubscriptionUpdate
from tvorai.providers.mock import MockProvider


@pytest.fixture
def store():
    """Create an isolated in-memory store for testing."""
    store = LedgerStore.from_url("sqlite:///:memory:")
    store.init_schema()
    yield store
    store.dispose()


@pytest.fixture
def file_store(tmp_path):
    """Create a file-backed store whose pool serves several threads."""
    store = LedgerStore.from_url(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        pool_size=8,
        max_overflow=8,
        pool_timeout=30.0,
        statement_timeout=30.0,
    )
    store.init_schema()
    yield store
    store.dispose()


@pytest.fixture
def settings():
    """Settings for tests: no keepalive thread, mock provider."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite:///:memory:",
        GENERATION_PROVIDER="mock",
        KEEPALIVE_INTERVAL_SECONDS=0,
    )


@pytest.fixture
def provider():
    return MockProvider()


@pytest.fixture
def client(settings, store, provider):
    """TestClient bound to the isolated store and mock provider."""
    from tvorai.api.app import create_app

    app = create_app(settings=settings, store=store, provider=provider)
    return TestClient(app)


@pytest.fixture
def subscribe():
    """Ingest a subscription directly through the ledger."""

    def _subscribe(
        store,
        wp_user_id=42,
        monthly_credit_limit=1000,
        active=True,
        plan_id=1,
        email=None,
    ):
        update = SubscriptionUpdate(
            wp_user_id=wp_user_id,
            email=email,
            plan_id=plan_id,
            monthly_credit_limit=monthly_credit_limit,
            cycle_start=date(2025, 1, 1),
            cycle_end=date(2025, 1, 31),
            active=active,
        )
        return ingest_subscription(store, update)

    return _subscribe
