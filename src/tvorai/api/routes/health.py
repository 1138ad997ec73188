"""Operational endpoints.

GET /          - Plain-text liveness banner
GET /health    - Health check with store ping
GET /debug/db  - Which ledger tables exist
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError

from tvorai.api.app import get_store
from tvorai.db.session import LedgerStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "TvorAI backend OK"


@router.get("/health")
def health_check(store: LedgerStore = Depends(get_store)) -> dict:
    """Health check endpoint."""
    return {"status": "ok", "db": store.ping()}


@router.get("/debug/db")
def debug_db(store: LedgerStore = Depends(get_store)):
    """Report presence of each ledger table."""
    try:
        tables = store.table_presence()
    except SQLAlchemyError:
        logger.exception("Table inspection failed")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "DB_ERROR", "detail": "database operation failed"},
        )
    return {"ok": True, "tables": tables}
