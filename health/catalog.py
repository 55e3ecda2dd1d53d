"""Metric catalog: where each simple quantity query lands in the snapshot.

METRIC_CATALOG holds the single-value queries and SERIES_CATALOG the
bucketed trend series. Composite queries (stand hours, sleep, apnea,
activity rings, workouts) are run by the aggregator and are not listed
here.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from health.domain.models import HealthUnit, MetricId, SeriesBucket, SeriesStatistic
from health.domain.units import glucose_status, mg_dl_to_mmol_l, normalize_percent, round_value


class QueryKind(StrEnum):
    CUMULATIVE_TODAY = "cumulative_today"
    LATEST = "latest"


@dataclass(frozen=True)
class MetricSpec:
    metric_id: MetricId
    section: str
    key: str
    unit: HealthUnit
    kind: QueryKind
    transform: Callable[[float], float] | None = None
    # Extra keys derived from the stored value, merged into the same section
    derive: Callable[[float], dict[str, Any]] | None = None


def glucose_fields(mg_dl: float) -> dict[str, Any]:
    mmol_l = mg_dl_to_mmol_l(mg_dl)
    return {
        "bloodGlucoseMmolL": round_value(mmol_l, 1),
        "bloodGlucoseStatus": glucose_status(mmol_l),
    }


_TODAY = QueryKind.CUMULATIVE_TODAY
_LATEST = QueryKind.LATEST

METRIC_CATALOG: tuple[MetricSpec, ...] = (
    # Activity (sum since local midnight)
    MetricSpec(MetricId.STEP_COUNT, "activity", "stepsToday", HealthUnit.COUNT, _TODAY),
    MetricSpec(
        MetricId.DISTANCE_WALKING_RUNNING,
        "activity",
        "distanceWalkingRunningKmToday",
        HealthUnit.KILOMETER,
        _TODAY,
    ),
    MetricSpec(
        MetricId.ACTIVE_ENERGY_BURNED,
        "activity",
        "activeEnergyKcalToday",
        HealthUnit.KILOCALORIE,
        _TODAY,
    ),
    MetricSpec(
        MetricId.BASAL_ENERGY_BURNED,
        "activity",
        "basalEnergyKcalToday",
        HealthUnit.KILOCALORIE,
        _TODAY,
    ),
    MetricSpec(
        MetricId.FLIGHTS_CLIMBED, "activity", "flightsClimbedToday", HealthUnit.COUNT, _TODAY
    ),
    MetricSpec(
        MetricId.EXERCISE_TIME, "activity", "exerciseMinutesToday", HealthUnit.MINUTE, _TODAY
    ),
    MetricSpec(
        MetricId.TIME_IN_DAYLIGHT,
        "environment",
        "daylightMinutesToday",
        HealthUnit.MINUTE,
        _TODAY,
    ),
    # Heart (latest sample)
    MetricSpec(
        MetricId.HEART_RATE, "heart", "latestHeartRateBpm", HealthUnit.BEATS_PER_MINUTE, _LATEST
    ),
    MetricSpec(
        MetricId.RESTING_HEART_RATE,
        "heart",
        "restingHeartRateBpm",
        HealthUnit.BEATS_PER_MINUTE,
        _LATEST,
    ),
    MetricSpec(
        MetricId.WALKING_HEART_RATE_AVERAGE,
        "heart",
        "walkingHeartRateAverageBpm",
        HealthUnit.BEATS_PER_MINUTE,
        _LATEST,
    ),
    MetricSpec(
        MetricId.HEART_RATE_VARIABILITY_SDNN,
        "heart",
        "heartRateVariabilityMs",
        HealthUnit.MILLISECOND,
        _LATEST,
    ),
    MetricSpec(MetricId.VO2_MAX, "heart", "vo2MaxMlKgMin", HealthUnit.VO2, _LATEST),
    MetricSpec(
        MetricId.BLOOD_PRESSURE_SYSTOLIC,
        "heart",
        "systolicBloodPressureMmhg",
        HealthUnit.MMHG,
        _LATEST,
    ),
    MetricSpec(
        MetricId.BLOOD_PRESSURE_DIASTOLIC,
        "heart",
        "diastolicBloodPressureMmhg",
        HealthUnit.MMHG,
        _LATEST,
    ),
    MetricSpec(
        MetricId.ATRIAL_FIBRILLATION_BURDEN,
        "heart",
        "atrialFibrillationBurdenPercent",
        HealthUnit.PERCENT,
        _LATEST,
        normalize_percent,
    ),
    # Oxygen
    MetricSpec(
        MetricId.OXYGEN_SATURATION,
        "oxygen",
        "bloodOxygenPercent",
        HealthUnit.PERCENT,
        _LATEST,
        normalize_percent,
    ),
    # Metabolic
    MetricSpec(
        MetricId.BLOOD_GLUCOSE,
        "metabolic",
        "bloodGlucoseMgDl",
        HealthUnit.MG_PER_DL,
        _LATEST,
        derive=glucose_fields,
    ),
    # Body
    MetricSpec(
        MetricId.RESPIRATORY_RATE,
        "body",
        "respiratoryRateBrpm",
        HealthUnit.BEATS_PER_MINUTE,
        _LATEST,
    ),
    MetricSpec(
        MetricId.BODY_TEMPERATURE, "body", "bodyTemperatureCelsius", HealthUnit.CELSIUS, _LATEST
    ),
    MetricSpec(MetricId.BODY_MASS, "body", "bodyMassKg", HealthUnit.KILOGRAM, _LATEST),
)


@dataclass(frozen=True)
class SeriesSpec:
    """A trend series: `bucket_count` buckets ending now, or since midnight when None."""

    metric_id: MetricId
    section: str
    key: str
    unit: HealthUnit
    bucket: SeriesBucket
    statistic: SeriesStatistic
    bucket_count: int | None = None
    transform: Callable[[float], float] | None = None


_HOUR = SeriesBucket.HOUR
_DAY = SeriesBucket.DAY
_SUM = SeriesStatistic.SUM
_AVG = SeriesStatistic.AVERAGE

SERIES_CATALOG: tuple[SeriesSpec, ...] = (
    # Hourly since local midnight
    SeriesSpec(
        MetricId.STEP_COUNT, "activity", "stepsHourlySeriesToday", HealthUnit.COUNT, _HOUR, _SUM
    ),
    SeriesSpec(
        MetricId.ACTIVE_ENERGY_BURNED,
        "activity",
        "activeEnergyHourlySeriesToday",
        HealthUnit.KILOCALORIE,
        _HOUR,
        _SUM,
    ),
    SeriesSpec(
        MetricId.EXERCISE_TIME,
        "activity",
        "exerciseMinutesHourlySeriesToday",
        HealthUnit.MINUTE,
        _HOUR,
        _SUM,
    ),
    # Rolling windows
    SeriesSpec(
        MetricId.HEART_RATE,
        "heart",
        "heartRateSeriesLast24h",
        HealthUnit.BEATS_PER_MINUTE,
        _HOUR,
        _AVG,
        24,
    ),
    SeriesSpec(
        MetricId.HEART_RATE_VARIABILITY_SDNN,
        "heart",
        "heartRateVariabilitySeriesLast7d",
        HealthUnit.MILLISECOND,
        _DAY,
        _AVG,
        7,
    ),
    SeriesSpec(
        MetricId.OXYGEN_SATURATION,
        "oxygen",
        "bloodOxygenSeriesLast24h",
        HealthUnit.PERCENT,
        _HOUR,
        _AVG,
        24,
        normalize_percent,
    ),
    SeriesSpec(
        MetricId.BLOOD_GLUCOSE,
        "metabolic",
        "bloodGlucoseSeriesLast7d",
        HealthUnit.MG_PER_DL,
        _DAY,
        _AVG,
        7,
    ),
    SeriesSpec(
        MetricId.TIME_IN_DAYLIGHT,
        "environment",
        "daylightSeriesLast7d",
        HealthUnit.MINUTE,
        _DAY,
        _SUM,
        7,
    ),
    SeriesSpec(
        MetricId.RESPIRATORY_RATE,
        "body",
        "respiratoryRateSeriesLast7d",
        HealthUnit.BEATS_PER_MINUTE,
        _DAY,
        _AVG,
        7,
    ),
    SeriesSpec(
        MetricId.BODY_TEMPERATURE,
        "body",
        "bodyTemperatureSeriesLast7d",
        HealthUnit.CELSIUS,
        _DAY,
        _AVG,
        7,
    ),
    SeriesSpec(
        MetricId.BODY_MASS, "body", "bodyMassSeriesLast30d", HealthUnit.KILOGRAM, _DAY, _AVG, 30
    ),
)
