"""Debit transaction.

Checks entitlement and sufficiency, decrements the balance and appends
a usage log row as one atomic unit. Concurrent debits for the same user
are serialized by row locks (BEGIN IMMEDIATE on SQLite), and the
decrement itself is a guarded compare-and-swap, so two debits can never
both spend the same credits.
"""

from __future__ import annotations

import logging
from typing import Any

from tvorai.db import repo
from tvorai.db.repo import DbSession
from tvorai.db.session import LedgerStore
from tvorai.ledger.entitlement import resolve_entitlement
from tvorai.ledger.errors import (
    BalanceNotFound,
    InsufficientCredits,
    SubscriptionInactive,
)
from tvorai.models.domain import CreditBalanceEntity, DebitResult, Entitlement

logger = logging.getLogger(__name__)


def _check_preconditions(entitlement: Entitlement, cost: int) -> CreditBalanceEntity:
    """Check subscription, balance row and sufficiency, in that order."""
    if entitlement.subscription is None or not entitlement.subscription.active:
        raise SubscriptionInactive("No active subscription")
    if entitlement.balance is None:
        raise BalanceNotFound("No credit balance for user")
    if entitlement.balance.credits_remaining < cost:
        raise InsufficientCredits(entitlement.balance.credits_remaining, cost)
    return entitlement.balance


def _debit_in_session(
    session: DbSession,
    wp_user_id: int,
    feature_type: str,
    cost: int,
    metadata: dict[str, Any] | None,
) -> DebitResult:
    entitlement = resolve_entitlement(session, wp_user_id, lock=True)
    _check_preconditions(entitlement, cost)
    user_id = entitlement.user.user_id

    if not repo.decrement_balance(session, user_id, cost):
        # Another writer got there first; report the balance it left behind
        remaining = repo.get_credits_remaining(session, user_id) or 0
        raise InsufficientCredits(remaining, cost)

    repo.create_usage_log(
        session,
        user_id,
        feature_type=feature_type,
        credits_spent=cost,
        metadata=metadata,
    )
    remaining = repo.get_credits_remaining(session, user_id)
    return DebitResult(credits_remaining=remaining, charged=cost)


def debit(
    store: LedgerStore,
    wp_user_id: int,
    feature_type: str,
    cost: int,
    metadata: dict[str, Any] | None = None,
) -> DebitResult:
    """Charge a user for one billed action.

    Preconditions, checked in order inside the transaction:
    user exists, subscription active, balance row exists, balance covers
    cost. Any failure rolls the whole transaction back.

    Args:
        store: Store handle.
        wp_user_id: External user identity.
        feature_type: Feature tag recorded in the usage log.
        cost: Resolved cost in credits (>= 0).
        metadata: Structured details recorded with the usage row.

    Returns:
        DebitResult with the new balance and the amount charged.

    Raises:
        UserNotFound, SubscriptionInactive, BalanceNotFound,
        InsufficientCredits: On the corresponding failed check.
    """
    if cost < 0:
        raise ValueError(f"Debit cost must be non-negative, got {cost}")

    try:
        with store.transaction() as session:
            result = _debit_in_session(session, wp_user_id, feature_type, cost, metadata)
    except InsufficientCredits as e:
        logger.info(
            f"Debit rejected for wp_user_id={wp_user_id}: "
            f"need {e.required}, have {e.credits_remaining}"
        )
        raise

    logger.info(
        f"Debited {cost} credits from wp_user_id={wp_user_id} for {feature_type}; "
        f"{result.credits_remaining} remaining"
    )
    return result


def check_entitlement(store: LedgerStore, wp_user_id: int, cost: int) -> CreditBalanceEntity:
    """Read-only preflight: would a debit of this cost pass right now?

    Used before dispatching a paid generation job. The actual debit
    re-checks everything under lock.

    Returns:
        Current balance.

    Raises:
        UserNotFound, SubscriptionInactive, BalanceNotFound,
        InsufficientCredits: On the corresponding failed check.
    """
    with store.transaction() as session:
        entitlement = resolve_entitlement(session, wp_user_id)
        return _check_preconditions(entitlement, cost)
