"""Ledger error taxonomy.

Every error carries a machine-readable code and the HTTP status that
reflects its class: 400 validation, 402 insufficient funds,
403 forbidden, 404 not found.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for expected ledger failures."""

    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.code)
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        """Structured error body returned to callers."""
        payload: dict[str, Any] = {"error": self.code}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class MissingFields(LedgerError):
    code = "MISSING_FIELDS"
    status_code = 400

    def __init__(self, fields: list[str] | None = None):
        self.fields = list(fields or [])
        detail = f"Missing required fields: {', '.join(self.fields)}" if self.fields else None
        super().__init__(detail)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.fields:
            payload["fields"] = self.fields
        return payload


class UnknownFeatureType(LedgerError):
    code = "UNKNOWN_FEATURE_TYPE"
    status_code = 400

    def __init__(self, feature_type: str | None):
        self.feature_type = feature_type
        super().__init__(f"No price configured for feature type {feature_type!r}")


class UserNotFound(LedgerError):
    code = "USER_NOT_FOUND"
    status_code = 404

    def __init__(self, wp_user_id: int):
        self.wp_user_id = wp_user_id
        super().__init__(f"No user with wp_user_id={wp_user_id}")


class SubscriptionInactive(LedgerError):
    """Raised when the subscription is missing or not active."""

    code = "SUBSCRIPTION_INACTIVE"
    status_code = 403


class BalanceNotFound(LedgerError):
    code = "BALANCE_NOT_FOUND"
    status_code = 404


class InsufficientCredits(LedgerError):
    """Raised when the balance cannot cover the cost.

    Carries the current balance so the caller can display it.
    """

    code = "INSUFFICIENT_CREDITS"
    status_code = 402

    def __init__(self, credits_remaining: int, required: int):
        self.credits_remaining = credits_remaining
        self.required = required
        super().__init__(f"Required {required} credits, {credits_remaining} remaining")

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["credits_remaining"] = self.credits_remaining
        payload["required"] = self.required
        return payload
