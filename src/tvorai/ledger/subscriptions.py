"""Subscription ingestion.

Makes a billing-system notification authoritative: get-or-create the
user, upsert their subscription, and hard-reset their balance to the new
monthly limit. Replaying the same payload leaves the same final state.
"""

from __future__ import annotations

import logging

from tvorai.core.normalize import is_defined
from tvorai.db import repo
from tvorai.db.session import LedgerStore
from tvorai.ledger.entitlement import get_or_create_user
from tvorai.ledger.errors import MissingFields
from tvorai.models.domain import IngestResult
from tvorai.models.types import SubscriptionUpdate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("wp_user_id", "plan_id", "monthly_credit_limit", "cycle_start", "cycle_end")


def missing_fields(update: SubscriptionUpdate) -> list[str]:
    """Names of required fields that are absent.

    Presence is an "is defined" check: plan_id=0 and
    monthly_credit_limit=0 are valid values.
    """
    return [name for name in REQUIRED_FIELDS if not is_defined(getattr(update, name))]


def ingest_subscription(store: LedgerStore, update: SubscriptionUpdate) -> IngestResult:
    """Upsert subscription and reset balance for a user.

    Args:
        store: Store handle.
        update: Parsed notification payload.

    Returns:
        IngestResult with the internal user id.

    Raises:
        MissingFields: If a required field is absent (no store access).
    """
    missing = missing_fields(update)
    if missing:
        raise MissingFields(missing)

    with store.transaction() as session:
        user_id = get_or_create_user(session, update.wp_user_id, update.email)
        # get_or_create_user holds the user row lock; same order as debit
        repo.upsert_subscription(
            session,
            user_id,
            plan_id=update.plan_id,
            monthly_credit_limit=update.monthly_credit_limit,
            cycle_start=update.cycle_start,
            cycle_end=update.cycle_end,
            active=update.active,
        )
        repo.reset_balance(
            session,
            user_id,
            cycle_start=update.cycle_start,
            credits_remaining=update.monthly_credit_limit,
        )

    logger.info(
        f"Ingested subscription for wp_user_id={update.wp_user_id}: plan={update.plan_id} "
        f"limit={update.monthly_credit_limit} active={update.active}"
    )
    return IngestResult(user_id=user_id)
