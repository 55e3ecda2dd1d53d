"""Numeric normalization for values crossing the mobile bridge.

The bridge serializes to JSON, which has no NaN or Infinity, so every
number that reaches a snapshot section passes through here first.
"""

import math
from collections.abc import Mapping
from typing import Any

MG_DL_PER_MMOL_L = 18.0

# Past this scaled magnitude, rescaling a rounded value can drift by a
# whole unit, so such values are left as they are.
EXACT_SCALE_LIMIT = 2.0**50


def round_value(value: float, digits: int = 2) -> float:
    """Round half away from zero to `digits` places. Non-finite input yields 0.

    Values too large to carry `digits` fractional places are returned
    unchanged, which keeps rounding idempotent.
    """
    if not math.isfinite(value):
        return 0.0
    factor = 10.0**digits
    scaled = value * factor
    if not math.isfinite(scaled) or abs(scaled) >= EXACT_SCALE_LIMIT:
        return float(value)
    return math.copysign(math.floor(abs(scaled) + 0.5), scaled) / factor


def is_finite_bridge_safe(value: Any) -> bool:
    """True for finite numbers, booleans and strings."""
    if isinstance(value, (bool, str)):
        return True
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    return False


def filter_bridge_safe(values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop pairs that cannot be serialized safely.

    Nested mappings are filtered recursively; lists keep only their safe
    scalars and their (filtered) mappings.
    """
    safe: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Mapping):
            safe[key] = filter_bridge_safe(value)
        elif isinstance(value, list):
            safe[key] = [
                filter_bridge_safe(item) if isinstance(item, Mapping) else item
                for item in value
                if isinstance(item, Mapping) or is_finite_bridge_safe(item)
            ]
        elif is_finite_bridge_safe(value):
            safe[key] = value
    return safe


def normalize_percent(raw: float) -> float:
    """Accept a 0-1 fraction or an already scaled 0-100 value and return 0-100."""
    return raw * 100 if raw <= 1 else raw


def mg_dl_to_mmol_l(value: float) -> float:
    return value / MG_DL_PER_MMOL_L


def glucose_status(mmol_l: float | None) -> str:
    """Coarse blood glucose band used by the dashboard card."""
    if mmol_l is None or not math.isfinite(mmol_l):
        return "noData"
    if mmol_l >= 11.1:
        return "high"
    if mmol_l >= 7.0:
        return "elevated"
    if mmol_l < 3.9:
        return "low"
    return "normal"
