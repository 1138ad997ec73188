"""Pydantic models for the TvorAI API.

Request models run every loosely typed field through the single
normalization step in tvorai.core.normalize. Required ledger fields are
declared optional here and checked explicitly by the ledger, so a
missing field yields MISSING_FIELDS rather than a generic 422.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from tvorai.core.normalize import is_defined, parse_bool, to_int

# Storage ranges: wp_user_id is BIGINT, credit amounts are INT
MAX_USER_ID = 2**63 - 1
MAX_CREDITS = 2**31 - 1


def _optional_int(value: Any) -> int | None:
    return to_int(value) if is_defined(value) else None


def _optional_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        token = value.strip()
        if not token:
            return None
        # Accept full timestamps from billing systems; only the day matters
        return token[:10] if len(token) > 10 else token
    return value


# ============================================================================
# Ledger requests
# ============================================================================


class ConsumeRequest(BaseModel):
    """Debit request from the frontend or the gateway."""

    wp_user_id: int | None = Field(default=None, ge=0, le=MAX_USER_ID)
    feature_type: str | None = None
    credits_spent: int | None = Field(default=None, alias="explicit_cost", le=MAX_CREDITS)
    units: int | None = Field(default=None, le=MAX_CREDITS)
    metadata: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}

    @field_validator("wp_user_id", "credits_spent", "units", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        return _optional_int(value)


class SubscriptionUpdate(BaseModel):
    """Billing-system notification of a (re)subscription or renewal."""

    wp_user_id: int | None = Field(default=None, ge=0, le=MAX_USER_ID)
    email: str | None = None
    plan_id: int | None = Field(default=None, ge=0, le=MAX_CREDITS)
    monthly_credit_limit: int | None = Field(default=None, ge=0, le=MAX_CREDITS)
    cycle_start: date | None = None
    cycle_end: date | None = None
    active: bool = False

    @field_validator("wp_user_id", "plan_id", "monthly_credit_limit", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        return _optional_int(value)

    @field_validator("cycle_start", "cycle_end", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return _optional_date(value)

    @field_validator("active", mode="before")
    @classmethod
    def _coerce_active(cls, value: Any) -> bool:
        return parse_bool(value)

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, value: Any) -> Any:
        return value if is_defined(value) else None


class PriceQuoteRequest(BaseModel):
    """Pricing preview request."""

    feature_type: str | None = None
    explicit_cost: int | None = Field(default=None, le=MAX_CREDITS)
    units: int | None = Field(default=None, le=MAX_CREDITS)
    metadata: dict[str, Any] | None = None

    @field_validator("explicit_cost", "units", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        return _optional_int(value)


# ============================================================================
# Ledger responses
# ============================================================================


class ConsumeResponse(BaseModel):
    """Successful debit."""

    ok: bool = True
    credits_remaining: int
    charged: int


class SubscriptionUpdateResponse(BaseModel):
    """Successful ingestion."""

    ok: bool = True
    user_id: int


class UsageEntry(BaseModel):
    """One usage log row in a report."""

    feature_type: str
    credits_spent: int
    metadata: dict[str, Any] | None
    timestamp: datetime


class UsageReportResponse(BaseModel):
    """Entitlement and recent usage for a user."""

    wp_user_id: int
    plan_id: int | None
    monthly_credit_limit: int
    active: bool
    credits_remaining: int
    cycle_start: date | None
    cycle_end: date | None
    recent_usage: list[UsageEntry]


class PriceQuoteResponse(BaseModel):
    """Resolved price for a feature."""

    feature_type: str | None
    cost: int


# ============================================================================
# Generation gateway requests
# ============================================================================


class BillableRequest(BaseModel):
    """Fields shared by every generation request that can bill a user."""

    wp_user_id: int | None = Field(default=None, ge=0, le=MAX_USER_ID)

    @field_validator("wp_user_id", mode="before")
    @classmethod
    def _coerce_user(cls, value: Any) -> int | None:
        return _optional_int(value)


class VideoGenerationRequest(BillableRequest):
    """Kling v2.5 turbo text-to-video or image-to-video request."""

    prompt: str | None = None
    duration: int = 5
    aspect_ratio: str | None = None
    cfg_scale: float | None = None
    mode: str = "pro"
    negative_prompt: str | None = None
    image_base64: str | None = None
    image_url: str | None = None

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> int:
        return to_int(value) if is_defined(value) else 5


class ImageGenerationRequest(BillableRequest):
    """Seedream 3.0 text-to-image request."""

    prompt: str | None = None
    model: str = "seedream-3-0-t2i-250415"
    response_format: Literal["url", "b64_json"] = "url"
    size: str = "1024x1024"
    seed: int = -1
    guidance_scale: float = 2.5
    watermark: bool = False

    @field_validator("seed", mode="before")
    @classmethod
    def _coerce_seed(cls, value: Any) -> int:
        return to_int(value) if is_defined(value) else -1

    @field_validator("watermark", mode="before")
    @classmethod
    def _coerce_watermark(cls, value: Any) -> bool:
        return parse_bool(value, default=False)


class MergeFaceRequest(BillableRequest):
    """Face-merge request with two base64 images."""

    face_image_file: str | None = None
    image_file: str | None = None


# ============================================================================
# Generation gateway responses
# ============================================================================


class TaskSubmitted(BaseModel):
    """Async provider job accepted."""

    ok: bool = True
    generation_id: str
    status: Literal["queued"] = "queued"
    credits_remaining: int | None = None
    charged: int | None = None


class TaskMeta(BaseModel):
    """Progress details for a polled task."""

    progress: int = 0
    eta: int = 0
    task_id: str


class TaskStatusResponse(BaseModel):
    """Normalized status of a provider task."""

    status: Literal["in_progress", "success", "failed"]
    video_url: str | None = None
    image_urls: list[str] | None = None
    reason: str | None = None
    meta: TaskMeta


class ImageResult(BaseModel):
    """Synchronous image generation result."""

    ok: bool = True
    format: Literal["url", "b64_json"]
    images: list[str]
    credits_remaining: int | None = None
    charged: int | None = None


class MergeFaceResult(BaseModel):
    """Synchronous face-merge result."""

    ok: bool = True
    image_type: str
    image_base64: str
    data_url: str
    credits_remaining: int | None = None
    charged: int | None = None
