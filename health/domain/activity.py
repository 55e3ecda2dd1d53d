"""Activity ring summary: today's move, exercise and stand progress against goals."""

import math
from typing import Any

from health.domain.models import ActivitySummary
from health.domain.units import round_value

DEFAULT_MOVE_GOAL_KCAL = 480.0
DEFAULT_EXERCISE_GOAL_MINUTES = 45.0
DEFAULT_STAND_GOAL_HOURS = 12.0


def _goal(value: float | None, default: float) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        return default
    return value


def _ring_percent(value: float | None, goal: float) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return round_value(value / goal * 100, 1)


def activity_goal_section(summary: ActivitySummary) -> dict[str, Any]:
    """Section keys for the activity rings.

    Goals fall back to the defaults when the provider reports none, or a
    non-positive or non-finite one. Ring percent is not capped, so an
    exceeded goal reads above 100. A non-finite value leaves its ring
    key absent.
    """
    move_goal = _goal(summary.move_goal_kcal, DEFAULT_MOVE_GOAL_KCAL)
    exercise_goal = _goal(summary.exercise_goal_minutes, DEFAULT_EXERCISE_GOAL_MINUTES)
    stand_goal = _goal(summary.stand_goal_hours, DEFAULT_STAND_GOAL_HOURS)

    section: dict[str, Any] = {
        "moveGoalKcal": round_value(move_goal),
        "exerciseGoalMinutes": round_value(exercise_goal),
        "standGoalHours": round_value(stand_goal),
    }
    rings = {
        "moveRingPercent": _ring_percent(summary.active_energy_kcal, move_goal),
        "exerciseRingPercent": _ring_percent(summary.exercise_minutes, exercise_goal),
        "standRingPercent": _ring_percent(summary.stand_hours, stand_goal),
    }
    section.update({k: v for k, v in rings.items() if v is not None})
    return section
