"""Database schema for the TvorAI credit ledger.

Four tables owned exclusively by the ledger. Unique constraints on
user_id make subscriptions and balances upsertable by user, and CHECK
constraints keep balances and spends non-negative at the store level.
"""

from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

LEDGER_TABLES = ("users", "subscriptions", "credit_balances", "usage_logs")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Ledger user keyed by the external WordPress identity.

    Invariant: UNIQUE(wp_user_id)
    Makes get-or-create conflict-safe under concurrent first contact.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wp_user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("wp_user_id", name="uq_users_wp_user_id"),)


class Subscription(Base):
    """Current plan and billing cycle for a user.

    Invariant: UNIQUE(user_id)
    One authoritative subscription per user, overwritten on ingestion.
    """

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    plan_id: Mapped[int] = mapped_column(Integer, nullable=False)
    monthly_credit_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    cycle_start: Mapped[date] = mapped_column(Date, nullable=False)
    cycle_end: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (UniqueConstraint("user_id", name="uq_subscriptions_user"),)


class CreditBalance(Base):
    """Remaining credits for the user's current cycle.

    Invariants:
    - UNIQUE(user_id)
    - credits_remaining >= 0
    """

    __tablename__ = "credit_balances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    cycle_start: Mapped[date] = mapped_column(Date, nullable=False)
    credits_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_credit_balances_user"),
        CheckConstraint("credits_remaining >= 0", name="ck_credit_balances_non_negative"),
    )


class UsageLog(Base):
    """Billed usage event (append-only).

    Written in the same transaction as the matching balance decrement.
    """

    __tablename__ = "usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    feature_type: Mapped[str] = mapped_column(String(64), nullable=False)
    credits_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        CheckConstraint("credits_spent >= 0", name="ck_usage_logs_non_negative"),
    )
