"""Usage reporting: a read-only projection of entitlement and history."""

from __future__ import annotations

from tvorai.db import repo
from tvorai.db.session import LedgerStore
from tvorai.ledger.entitlement import resolve_entitlement
from tvorai.models.domain import UsageReport


def usage_report(store: LedgerStore, wp_user_id: int, limit: int = 10) -> UsageReport:
    """Build the usage report for a user.

    A user without a subscription or balance is reported with zeroed or
    null fields rather than an error.

    Raises:
        UserNotFound: If no user has this identity.
    """
    with store.transaction() as session:
        entitlement = resolve_entitlement(session, wp_user_id)
        sub = entitlement.subscription
        balance = entitlement.balance
        recent = repo.get_recent_usage(session, entitlement.user.user_id, limit=limit)

    return UsageReport(
        wp_user_id=wp_user_id,
        plan_id=sub.plan_id if sub else None,
        monthly_credit_limit=sub.monthly_credit_limit if sub else 0,
        active=sub.active if sub else False,
        credits_remaining=balance.credits_remaining if balance else 0,
        cycle_start=balance.cycle_start if balance else None,
        cycle_end=sub.cycle_end if sub else None,
        recent_usage=recent,
    )
