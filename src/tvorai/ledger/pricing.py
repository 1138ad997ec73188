"""Cost resolution for billable features.

Prices come from a static table keyed by feature type, refined by
duration x aspect-ratio tiers for video features. A unit multiplier
scales the result. Callers may bypass the table with an explicit cost.
"""

from __future__ import annotations

from typing import Any, Mapping

from tvorai.core.normalize import is_defined, to_int
from tvorai.ledger.errors import UnknownFeatureType

# Credits per single unit of each feature
PRICING: dict[str, int] = {
    "kling_v25_i2v_imagine": 300,
    "kling_v25_t2v": 320,
    "seedream_30_t2i": 120,
    "merge_face": 240,
}

ANY_ASPECT = "*"

# (duration_seconds, aspect_ratio) -> credits; ANY_ASPECT matches every ratio
VIDEO_TIERS: dict[str, dict[tuple[int, str], int]] = {
    "kling_v25_t2v": {
        (5, ANY_ASPECT): 320,
        (10, ANY_ASPECT): 640,
    },
    "kling_v25_i2v_imagine": {
        (5, ANY_ASPECT): 300,
        (10, ANY_ASPECT): 600,
    },
}


def _tier_price(feature_type: str, metadata: Mapping[str, Any] | None) -> int | None:
    tiers = VIDEO_TIERS.get(feature_type)
    if not tiers or not metadata or not is_defined(metadata.get("duration")):
        return None
    try:
        duration = to_int(metadata["duration"])
    except ValueError:
        return None
    aspect = str(metadata.get("aspect_ratio") or ANY_ASPECT).strip()
    price = tiers.get((duration, aspect))
    if price is None:
        price = tiers.get((duration, ANY_ASPECT))
    return price


def resolve_cost(
    feature_type: str | None,
    *,
    explicit_cost: Any = None,
    units: Any = None,
    metadata: Mapping[str, Any] | None = None,
) -> int:
    """Compute the credit cost of one billed action.

    Args:
        feature_type: Feature tag, e.g. "kling_v25_t2v".
        explicit_cost: Caller-supplied cost; trusted directly when given.
        units: Multiplier for the table price (minimum 1).
        metadata: Optional details (duration, aspect_ratio) for tiered prices.

    Returns:
        Non-negative integer cost.

    Raises:
        UnknownFeatureType: If no explicit cost is given and the feature
            type has no price.
        ValueError: If explicit_cost or units is not numeric.
    """
    if is_defined(explicit_cost):
        return max(0, to_int(explicit_cost))

    if not feature_type:
        raise UnknownFeatureType(feature_type)

    price = _tier_price(feature_type, metadata)
    if price is None:
        price = PRICING.get(feature_type)
    if price is None:
        raise UnknownFeatureType(feature_type)

    multiplier = max(1, to_int(units)) if is_defined(units) else 1
    return price * multiplier


def price_table() -> dict[str, Any]:
    """Static prices plus video tiers, for pricing previews."""
    return {
        "base": dict(PRICING),
        "video_tiers": {
            feature: [
                {"duration": duration, "aspect_ratio": aspect, "credits": credits}
                for (duration, aspect), credits in sorted(tiers.items())
            ]
            for feature, tiers in VIDEO_TIERS.items()
        },
    }
