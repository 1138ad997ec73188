"""Billing webhook endpoints.

POST /webhook/subscription-update - Ingest a (re)subscription or renewal
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tvorai.api.app import get_store
from tvorai.db.session import LedgerStore
from tvorai.ledger.subscriptions import ingest_subscription
from tvorai.models.types import SubscriptionUpdate, SubscriptionUpdateResponse

router = APIRouter()


@router.post("/webhook/subscription-update", response_model=SubscriptionUpdateResponse)
def subscription_update(
    update: SubscriptionUpdate,
    store: LedgerStore = Depends(get_store),
) -> SubscriptionUpdateResponse:
    """Upsert the user's subscription and reset their balance.

    Raises:
        MissingFields: 400 if a required field is absent.
    """
    result = ingest_subscription(store, update)
    return SubscriptionUpdateResponse(user_id=result.user_id)
