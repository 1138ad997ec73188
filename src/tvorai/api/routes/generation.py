"""Generation gateway endpoints.

POST /api/kling/v2-5/t2v/generate        - Start text-to-video job
GET  /api/kling/v2-5/t2v/status/{task_id} - Poll text-to-video job
POST /api/kling/v2-5/i2v/generate        - Start image-to-video job
GET  /api/kling/v2-5/i2v/status/{task_id} - Poll image-to-video job
POST /api/seedream/3/t2i/generate        - Text-to-image (synchronous)
POST /api/novita/merge-face/generate     - Face merge (synchronous)

Requests that carry wp_user_id are billed: entitlement is checked before
the provider call and the feature price is debited once the provider
has accepted the job.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import APIRouter, Depends

from tvorai.api.app import get_provider, get_store
from tvorai.db.session import LedgerStore
from tvorai.ledger.debit import check_entitlement, debit
from tvorai.ledger.errors import LedgerError
from tvorai.ledger.pricing import resolve_cost
from tvorai.models.domain import DebitResult
from tvorai.models.types import (
    ImageGenerationRequest,
    ImageResult,
    MergeFaceRequest,
    MergeFaceResult,
    TaskStatusResponse,
    TaskSubmitted,
    VideoGenerationRequest,
)
from tvorai.providers.base import GatewayError, ProviderBase

router = APIRouter()
logger = logging.getLogger(__name__)

T2V_FEATURE = "kling_v25_t2v"
I2V_FEATURE = "kling_v25_i2v_imagine"
T2I_FEATURE = "seedream_30_t2i"
MERGE_FACE_FEATURE = "merge_face"

VIDEO_DURATIONS = (5, 10)
MAX_IMAGE_BYTES = 10 * 1024 * 1024
SIZE_PATTERN = re.compile(r"^(\d{3,4})x(\d{3,4})$")


# ============================================================================
# Validation helpers
# ============================================================================


def _bad_request(code: str, detail: str) -> GatewayError:
    return GatewayError(code, 400, detail)


def _require_prompt(prompt: str | None) -> str:
    if not prompt or not prompt.strip():
        raise _bad_request("INVALID_PROMPT", "Missing or empty 'prompt'.")
    return prompt


def _validate_video(request: VideoGenerationRequest) -> None:
    _require_prompt(request.prompt)
    if request.duration not in VIDEO_DURATIONS:
        raise _bad_request("INVALID_DURATION", "Invalid 'duration' (5|10).")
    if request.cfg_scale is not None and not 0 <= request.cfg_scale <= 1:
        raise _bad_request("INVALID_CFG_SCALE", "Invalid 'cfg_scale' (0..1).")
    if request.mode != "pro":
        raise _bad_request("INVALID_MODE", "Invalid 'mode' (only 'pro' supported).")


def base64_decoded_size(data: str) -> int:
    """Approximate decoded size of a base64 string or data URL."""
    marker = data.find("base64,")
    payload = data[marker + 7 :] if marker >= 0 else data
    return len(payload) * 3 // 4


def _video_payload(request: VideoGenerationRequest) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": request.prompt,
        "duration": str(request.duration),
        "mode": request.mode,
    }
    if request.cfg_scale is not None:
        payload["cfg_scale"] = request.cfg_scale
    if request.negative_prompt:
        payload["negative_prompt"] = request.negative_prompt
    return payload


# ============================================================================
# Billing helpers
# ============================================================================


def _preflight(
    store: LedgerStore, wp_user_id: int | None, feature_type: str, metadata: dict[str, Any]
) -> int | None:
    """Resolve the price and check entitlement; None when not billing."""
    if wp_user_id is None:
        return None
    cost = resolve_cost(feature_type, metadata=metadata)
    check_entitlement(store, wp_user_id, cost)
    return cost


def _charge(
    store: LedgerStore,
    wp_user_id: int | None,
    feature_type: str,
    cost: int | None,
    metadata: dict[str, Any],
) -> DebitResult | None:
    if wp_user_id is None or cost is None:
        return None
    try:
        return debit(store, wp_user_id, feature_type, cost, metadata)
    except LedgerError as e:
        logger.warning(
            f"{feature_type} dispatched for wp_user_id={wp_user_id} but debit failed: {e.code}"
        )
        raise


def _billing_fields(result: DebitResult | None) -> dict[str, int]:
    if result is None:
        return {}
    return {"credits_remaining": result.credits_remaining, "charged": result.charged}


# ============================================================================
# Kling v2.5 turbo video
# ============================================================================


@router.post("/kling/v2-5/t2v/generate", response_model=TaskSubmitted)
def generate_text_to_video(
    request: VideoGenerationRequest,
    store: LedgerStore = Depends(get_store),
    provider: ProviderBase = Depends(get_provider),
) -> TaskSubmitted:
    """Start a text-to-video job and return its generation id."""
    _validate_video(request)
    payload = _video_payload(request)
    if request.aspect_ratio:
        payload["aspect_ratio"] = request.aspect_ratio

    pricing = {"duration": request.duration, "aspect_ratio": request.aspect_ratio}
    cost = _preflight(store, request.wp_user_id, T2V_FEATURE, pricing)

    task_id = provider.submit_text_to_video(payload)
    charged = _charge(
        store, request.wp_user_id, T2V_FEATURE, cost, {"task_id": task_id, **pricing}
    )
    return TaskSubmitted(generation_id=task_id, **_billing_fields(charged))


@router.post("/kling/v2-5/i2v/generate", response_model=TaskSubmitted)
def generate_image_to_video(
    request: VideoGenerationRequest,
    store: LedgerStore = Depends(get_store),
    provider: ProviderBase = Depends(get_provider),
) -> TaskSubmitted:
    """Start an image-to-video job from a base64 image or an image URL."""
    _validate_video(request)

    if request.image_base64:
        if base64_decoded_size(request.image_base64) > MAX_IMAGE_BYTES:
            raise _bad_request("IMAGE_TOO_LARGE", "Image exceeds 10 MB.")
        image = request.image_base64
    elif request.image_url:
        image = request.image_url
    else:
        raise _bad_request("MISSING_IMAGE", "Missing image (base64/url).")

    payload = {"image": image, **_video_payload(request)}

    pricing = {"duration": request.duration}
    cost = _preflight(store, request.wp_user_id, I2V_FEATURE, pricing)

    task_id = provider.submit_image_to_video(payload)
    charged = _charge(
        store, request.wp_user_id, I2V_FEATURE, cost, {"task_id": task_id, **pricing}
    )
    return TaskSubmitted(generation_id=task_id, **_billing_fields(charged))


@router.get("/kling/v2-5/t2v/status/{task_id}", response_model=TaskStatusResponse)
@router.get("/kling/v2-5/i2v/status/{task_id}", response_model=TaskStatusResponse)
def get_video_status(
    task_id: str,
    provider: ProviderBase = Depends(get_provider),
) -> TaskStatusResponse:
    """Poll a video job."""
    if not task_id.strip():
        raise _bad_request("MISSING_TASK_ID", "Missing taskId.")
    return provider.get_task_result(task_id)


# ============================================================================
# Seedream 3.0 text-to-image
# ============================================================================


@router.post("/seedream/3/t2i/generate", response_model=ImageResult)
def generate_text_to_image(
    request: ImageGenerationRequest,
    store: LedgerStore = Depends(get_store),
    provider: ProviderBase = Depends(get_provider),
) -> ImageResult:
    """Generate images synchronously and relay URLs or base64 data."""
    prompt = _require_prompt(request.prompt)
    if not SIZE_PATTERN.match(request.size):
        raise _bad_request("INVALID_SIZE", "Invalid 'size' (e.g., 1024x1024).")

    payload = {
        "model": request.model,
        "input": {
            "prompt": prompt,
            "size": request.size,
            "seed": request.seed,
            "guidance_scale": request.guidance_scale,
        },
        "extra": {"watermark": request.watermark},
        "response_format": request.response_format,
    }

    cost = _preflight(store, request.wp_user_id, T2I_FEATURE, {})
    data = provider.text_to_image(payload)

    if request.response_format == "b64_json":
        images = data.get("binary_data_base64")
        if not isinstance(images, list) or not images:
            raise GatewayError("NO_IMAGE_DATA", 502, "Provider returned no binary_data_base64.")
    else:
        images = data.get("image_urls")
        if not isinstance(images, list) or not images:
            raise GatewayError("NO_IMAGE_URLS", 502, "Provider returned no image_urls.")

    charged = _charge(
        store, request.wp_user_id, T2I_FEATURE, cost, {"size": request.size, "images": len(images)}
    )
    return ImageResult(format=request.response_format, images=images, **_billing_fields(charged))


# ============================================================================
# Face merge
# ============================================================================


@router.post("/novita/merge-face/generate", response_model=MergeFaceResult)
def generate_merge_face(
    request: MergeFaceRequest,
    store: LedgerStore = Depends(get_store),
    provider: ProviderBase = Depends(get_provider),
) -> MergeFaceResult:
    """Merge a face onto a target image."""
    if not request.face_image_file or not request.image_file:
        raise _bad_request("MISSING_IMAGES", "Send face_image_file and image_file as base64.")

    payload = {"face_image_file": request.face_image_file, "image_file": request.image_file}

    cost = _preflight(store, request.wp_user_id, MERGE_FACE_FEATURE, {})
    data = provider.merge_face(payload)

    image_b64 = data.get("image_file")
    if not image_b64:
        raise GatewayError("NO_IMAGE_DATA", 502, "Provider returned no image_file.")
    image_type = data.get("image_type") or "png"

    charged = _charge(store, request.wp_user_id, MERGE_FACE_FEATURE, cost, {"image_type": image_type})
    return MergeFaceResult(
        image_type=image_type,
        image_base64=image_b64,
        data_url=f"data:image/{image_type};base64,{image_b64}",
        **_billing_fields(charged),
    )
