"""Ledger API endpoints.

POST /consume                - Debit credits for a billed action
GET /usage/{wp_user_id}      - Entitlement and recent usage
GET /pricing                 - Static price table
POST /pricing/quote          - Resolve the cost of one action
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from tvorai.api.app import get_app_settings, get_store
from tvorai.config import Settings
from tvorai.db.session import LedgerStore
from tvorai.ledger.debit import debit
from tvorai.ledger.errors import MissingFields
from tvorai.ledger.pricing import price_table, resolve_cost
from tvorai.ledger.usage import usage_report
from tvorai.models.types import (
    MAX_USER_ID,
    ConsumeRequest,
    ConsumeResponse,
    PriceQuoteRequest,
    PriceQuoteResponse,
    UsageEntry,
    UsageReportResponse,
)

router = APIRouter()

GENERIC_FEATURE = "generic"


@router.post("/consume", response_model=ConsumeResponse)
def consume(
    request: ConsumeRequest,
    store: LedgerStore = Depends(get_store),
) -> ConsumeResponse:
    """Debit credits for one billed action.

    The cost is the explicit credits_spent when given, otherwise the
    price of feature_type (times units).

    Raises:
        MissingFields: wp_user_id absent, or neither a cost nor a feature type.
        UnknownFeatureType: feature_type has no price and no cost was given.
        UserNotFound, SubscriptionInactive, BalanceNotFound,
        InsufficientCredits: From the debit transaction.
    """
    missing = []
    if request.wp_user_id is None:
        missing.append("wp_user_id")
    if request.credits_spent is None and not request.feature_type:
        missing.append("feature_type")
    if missing:
        raise MissingFields(missing)

    cost = resolve_cost(
        request.feature_type,
        explicit_cost=request.credits_spent,
        units=request.units,
        metadata=request.metadata,
    )
    metadata = request.metadata if request.metadata is not None else {"units": request.units or 1}

    result = debit(
        store,
        request.wp_user_id,
        request.feature_type or GENERIC_FEATURE,
        cost,
        metadata,
    )
    return ConsumeResponse(credits_remaining=result.credits_remaining, charged=result.charged)


@router.get("/usage/{wp_user_id}", response_model=UsageReportResponse)
def get_usage(
    wp_user_id: int = Path(ge=0, le=MAX_USER_ID),
    store: LedgerStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> UsageReportResponse:
    """Get a user's plan, balance and most recent usage.

    Raises:
        UserNotFound: 404 if the user does not exist.
    """
    report = usage_report(store, wp_user_id, limit=settings.USAGE_HISTORY_LIMIT)
    return UsageReportResponse(
        wp_user_id=report.wp_user_id,
        plan_id=report.plan_id,
        monthly_credit_limit=report.monthly_credit_limit,
        active=report.active,
        credits_remaining=report.credits_remaining,
        cycle_start=report.cycle_start,
        cycle_end=report.cycle_end,
        recent_usage=[
            UsageEntry(
                feature_type=entry.feature_type,
                credits_spent=entry.credits_spent,
                metadata=entry.metadata,
                timestamp=entry.timestamp,
            )
            for entry in report.recent_usage
        ],
    )


@router.get("/pricing")
def get_pricing() -> dict:
    """Static price table with video tiers."""
    return price_table()


@router.post("/pricing/quote", response_model=PriceQuoteResponse)
def quote_price(request: PriceQuoteRequest) -> PriceQuoteResponse:
    """Preview the cost of one action without touching the ledger."""
    cost = resolve_cost(
        request.feature_type,
        explicit_cost=request.explicit_cost,
        units=request.units,
        metadata=request.metadata,
    )
    return PriceQuoteResponse(feature_type=request.feature_type, cost=cost)
