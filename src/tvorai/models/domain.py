"""Domain models for the TvorAI ledger.

Pure Python dataclasses representing domain entities.
These models are independent of SQLAlchemy and used throughout
the application for clean separation from the database layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


# ============================================================================
# Account Domain
# ============================================================================


@dataclass
class UserEntity:
    """Domain model for a ledger user."""

    user_id: int
    wp_user_id: int
    email: str | None = None


@dataclass
class SubscriptionEntity:
    """Domain model for a user's current subscription."""

    user_id: int
    plan_id: int
    monthly_credit_limit: int
    cycle_start: date
    cycle_end: date
    active: bool


@dataclass
class CreditBalanceEntity:
    """Domain model for a user's credit balance."""

    user_id: int
    cycle_start: date
    credits_remaining: int
    updated_at: datetime | None = None


@dataclass
class Entitlement:
    """A user together with the rows that decide whether they may spend."""

    user: UserEntity
    subscription: SubscriptionEntity | None
    balance: CreditBalanceEntity | None


# ============================================================================
# Usage Domain
# ============================================================================


@dataclass
class UsageLogEntity:
    """Domain model for a billed usage event."""

    usage_id: int
    user_id: int
    feature_type: str
    credits_spent: int
    metadata: dict[str, Any] | None
    timestamp: datetime


@dataclass
class DebitResult:
    """Outcome of a successful debit."""

    credits_remaining: int
    charged: int


@dataclass
class IngestResult:
    """Outcome of a subscription ingestion."""

    user_id: int


@dataclass
class UsageReport:
    """Read-only projection of a user's entitlement and recent usage."""

    wp_user_id: int
    plan_id: int | None
    monthly_credit_limit: int
    active: bool
    credits_remaining: int
    cycle_start: date | None
    cycle_end: date | None
    recent_usage: list[UsageLogEntity] = field(default_factory=list)
