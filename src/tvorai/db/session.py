"""Database store handle.

LedgerStore owns one SQLAlchemy engine (a bounded connection pool) and
its session factory. It is constructed explicitly at startup and passed
to every ledger operation, so tests can build an isolated store per test.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from sqlalchemy import Engine, create_engine, event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tvorai.db.schema import LEDGER_TABLES, Base

logger = logging.getLogger(__name__)


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE, so writers are serialized by
    taking the reserved lock up front instead.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop pysqlite from issuing its own deferred BEGIN.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(
    url: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 0,
    pool_timeout: float = 10.0,
    statement_timeout: float = 15.0,
) -> Engine:
    """Create a pooled engine with per-dialect round-trip timeouts.

    Args:
        url: SQLAlchemy database URL.
        pool_size: Connections kept in the pool.
        max_overflow: Extra connections allowed beyond pool_size.
        pool_timeout: Seconds to wait for a free pooled connection.
        statement_timeout: Seconds a single store round trip may take.

    Returns:
        Configured SQLAlchemy engine.
    """
    parsed = make_url(url)
    backend = parsed.get_backend_name()

    if backend == "sqlite":
        connect_args: dict[str, Any] = {
            "check_same_thread": False,
            "timeout": statement_timeout,
        }
        database = parsed.database
        if not database or database == ":memory:":
            # In-memory databases live on a single shared connection
            engine = create_engine(
                url, echo=False, connect_args=connect_args, poolclass=StaticPool
            )
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                url,
                echo=False,
                connect_args=connect_args,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
            )
        _enable_sqlite_immediate_transactions(engine)
        return engine

    connect_args = {}
    if backend == "mysql":
        seconds = max(1, int(statement_timeout))
        connect_args = {
            "connect_timeout": seconds,
            "read_timeout": seconds,
            "write_timeout": seconds,
        }
    elif backend == "postgresql":
        connect_args = {"options": f"-c statement_timeout={int(statement_timeout * 1000)}"}

    return create_engine(
        url,
        echo=False,
        connect_args=connect_args,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


class LedgerStore:
    """Explicit handle to the relational store."""

    def __init__(self, engine: Engine):
        """Initialize store.

        Args:
            engine: Engine whose pool every operation draws from.
        """
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings) -> LedgerStore:
        """Build a store from application settings."""
        engine = create_store_engine(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            statement_timeout=settings.DB_STATEMENT_TIMEOUT,
        )
        return cls(engine)

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> LedgerStore:
        """Build a store directly from a database URL."""
        return cls(create_store_engine(url, **engine_kwargs))

    def session(self) -> Session:
        """Get a database session.

        Note: Caller is responsible for closing the session. For automatic
        resource management, use transaction() instead.
        """
        return self._session_factory()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Context manager for one atomic unit of work.

        Commits on successful exit, rolls back on exception, and always
        closes the session so its pooled connection is released.

        Yields:
            SQLAlchemy Session instance.

        Example:
            with store.transaction() as session:
                session.add(record)
                # Auto-commits on exit, rolls back on exception
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_schema(self) -> None:
        """Create ledger tables if they do not exist."""
        Base.metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Run a no-op query to check connectivity.

        Returns:
            True if the store answered, False otherwise.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Store ping failed: {e}")
            return False
        return True

    def table_presence(self) -> dict[str, bool]:
        """Report which ledger tables exist in the store."""
        existing = set(inspect(self.engine).get_table_names())
        return {name: name in existing for name in LEDGER_TABLES}

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()
