"""Repository pattern for database operations.

Encapsulates all SQLAlchemy queries, keeping ledger logic free of ORM
details. Returns domain models (not SQLAlchemy entities) to callers.

Locking reads (for_update=True) must always be taken in the order
users -> subscriptions -> credit_balances so concurrent debits and
ingestions for the same user cannot deadlock.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from tvorai.db.schema import CreditBalance, Subscription, UsageLog, User
from tvorai.models.domain import (
    CreditBalanceEntity,
    SubscriptionEntity,
    UsageLogEntity,
    UserEntity,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session as DbSession
else:
    DbSession = Session

# Re-export for external use
__all__ = ["DbSession"]


# ============================================================================
# Converters: SQLAlchemy -> Domain
# ============================================================================


def _user_to_entity(user: User) -> UserEntity:
    """Convert SQLAlchemy User to domain entity."""
    return UserEntity(user_id=user.id, wp_user_id=user.wp_user_id, email=user.email)


def _subscription_to_entity(sub: Subscription) -> SubscriptionEntity:
    """Convert SQLAlchemy Subscription to domain entity."""
    return SubscriptionEntity(
        user_id=sub.user_id,
        plan_id=sub.plan_id,
        monthly_credit_limit=sub.monthly_credit_limit,
        cycle_start=sub.cycle_start,
        cycle_end=sub.cycle_end,
        active=bool(sub.active),
    )


def _balance_to_entity(balance: CreditBalance) -> CreditBalanceEntity:
    """Convert SQLAlchemy CreditBalance to domain entity."""
    return CreditBalanceEntity(
        user_id=balance.user_id,
        cycle_start=balance.cycle_start,
        credits_remaining=balance.credits_remaining,
        updated_at=balance.updated_at,
    )


def _usage_to_entity(log: UsageLog) -> UsageLogEntity:
    """Convert SQLAlchemy UsageLog to domain entity."""
    return UsageLogEntity(
        usage_id=log.id,
        user_id=log.user_id,
        feature_type=log.feature_type,
        credits_spent=log.credits_spent,
        metadata=log.metadata_json,
        timestamp=log.timestamp,
    )


# ============================================================================
# User Repository
# ============================================================================


def get_user_by_wp_id(
    session: DbSession, wp_user_id: int, *, for_update: bool = False
) -> UserEntity | None:
    """Get user by external WordPress identity."""
    query = session.query(User).filter(User.wp_user_id == wp_user_id)
    if for_update:
        query = query.with_for_update()
    user = query.first()
    return _user_to_entity(user) if user else None


def create_user(session: DbSession, wp_user_id: int, email: str | None = None) -> UserEntity:
    """Insert a user and flush so the unique constraint is checked now."""
    user = User(wp_user_id=wp_user_id, email=email)
    session.add(user)
    session.flush()
    return _user_to_entity(user)


def update_user_email(session: DbSession, user_id: int, email: str) -> None:
    """Update the stored email for a user."""
    user = session.query(User).filter(User.id == user_id).first()
    if user:
        user.email = email


# ============================================================================
# Subscription Repository
# ============================================================================


def _get_subscription_row(
    session: DbSession, user_id: int, for_update: bool
) -> Subscription | None:
    query = (
        session.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.id.desc())
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_subscription(
    session: DbSession, user_id: int, *, for_update: bool = False
) -> SubscriptionEntity | None:
    """Get the most recent subscription for a user."""
    sub = _get_subscription_row(session, user_id, for_update)
    return _subscription_to_entity(sub) if sub else None


def upsert_subscription(
    session: DbSession,
    user_id: int,
    *,
    plan_id: int,
    monthly_credit_limit: int,
    cycle_start: date,
    cycle_end: date,
    active: bool,
) -> SubscriptionEntity:
    """Insert the user's subscription or overwrite the current one."""
    sub = _get_subscription_row(session, user_id, for_update=True)
    if sub is None:
        sub = Subscription(user_id=user_id)
        session.add(sub)
    sub.plan_id = plan_id
    sub.monthly_credit_limit = monthly_credit_limit
    sub.cycle_start = cycle_start
    sub.cycle_end = cycle_end
    sub.active = active
    session.flush()
    return _subscription_to_entity(sub)


# ============================================================================
# Balance Repository
# ============================================================================


def _get_balance_row(session: DbSession, user_id: int, for_update: bool) -> CreditBalance | None:
    query = (
        session.query(CreditBalance)
        .filter(CreditBalance.user_id == user_id)
        .order_by(CreditBalance.id.desc())
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_balance(
    session: DbSession, user_id: int, *, for_update: bool = False
) -> CreditBalanceEntity | None:
    """Get the most recent credit balance for a user."""
    balance = _get_balance_row(session, user_id, for_update)
    return _balance_to_entity(balance) if balance else None


def reset_balance(
    session: DbSession, user_id: int, *, cycle_start: date, credits_remaining: int
) -> CreditBalanceEntity:
    """Insert or hard-reset the user's balance for a new cycle."""
    balance = _get_balance_row(session, user_id, for_update=True)
    if balance is None:
        balance = CreditBalance(user_id=user_id)
        session.add(balance)
    balance.cycle_start = cycle_start
    balance.credits_remaining = credits_remaining
    balance.updated_at = datetime.now(timezone.utc)
    session.flush()
    return _balance_to_entity(balance)


def decrement_balance(session: DbSession, user_id: int, amount: int) -> bool:
    """Subtract credits only if the balance still covers the amount.

    Compare-and-swap on the stored value: the WHERE clause re-checks
    sufficiency at write time.

    Returns:
        True if exactly one row was decremented.
    """
    updated = (
        session.query(CreditBalance)
        .filter(
            CreditBalance.user_id == user_id,
            CreditBalance.credits_remaining >= amount,
        )
        .update(
            {
                CreditBalance.credits_remaining: CreditBalance.credits_remaining - amount,
                CreditBalance.updated_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
    )
    return updated == 1


def get_credits_remaining(session: DbSession, user_id: int) -> int | None:
    """Read the stored balance value directly, bypassing the identity map."""
    row = (
        session.query(CreditBalance.credits_remaining)
        .filter(CreditBalance.user_id == user_id)
        .order_by(CreditBalance.id.desc())
        .first()
    )
    return row[0] if row else None


# ============================================================================
# Usage Repository
# ============================================================================


def create_usage_log(
    session: DbSession,
    user_id: int,
    *,
    feature_type: str,
    credits_spent: int,
    metadata: dict[str, Any] | None,
) -> UsageLogEntity:
    """Append a usage log row."""
    log = UsageLog(
        user_id=user_id,
        feature_type=feature_type,
        credits_spent=credits_spent,
        metadata_json=metadata,
    )
    session.add(log)
    session.flush()
    return _usage_to_entity(log)


def get_recent_usage(session: DbSession, user_id: int, limit: int = 10) -> list[UsageLogEntity]:
    """Get the newest usage rows for a user, newest first."""
    logs = (
        session.query(UsageLog)
        .filter(UsageLog.user_id == user_id)
        .order_by(UsageLog.timestamp.desc(), UsageLog.id.desc())
        .limit(limit)
        .all()
    )
    return [_usage_to_entity(log) for log in logs]
