"""Workout records: activity type naming and normalization."""

import math
from datetime import datetime

from health.domain.models import WorkoutRecord
from health.domain.units import round_value

# Platform workout activity type codes
WORKOUT_TYPE_NAMES: dict[int, str] = {
    13: "cycle",
    24: "hike",
    37: "run",
    46: "swim",
    50: "strength",
    52: "walk",
    57: "yoga",
    63: "hiit",
}


def workout_type_name(code: int) -> str:
    return WORKOUT_TYPE_NAMES.get(code, f"activity_{code}")


def _optional_metric(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return round_value(value)


def build_workout_record(
    activity_type_code: int,
    start: datetime,
    end: datetime,
    total_energy_kcal: float | None = None,
    total_distance_km: float | None = None,
) -> WorkoutRecord:
    """Build a WorkoutRecord with a derived name and rounded, finite values."""
    return WorkoutRecord(
        activity_type_code=activity_type_code,
        activity_type_name=workout_type_name(activity_type_code),
        start=start,
        end=end,
        duration_minutes=round_value((end - start).total_seconds() / 60),
        total_energy_kcal=_optional_metric(total_energy_kcal),
        total_distance_km=_optional_metric(total_distance_km),
    )
