"""Canonical health domain models.

Samples come from the device health store through a SampleProvider.
Everything derived from them (segments, blocks, summaries, the snapshot)
is built fresh per aggregation call and never persisted.

Design principles:
- Immutable inputs: Sample and IntervalSegment are frozen once created
- Absent, not zero: a missing metric is a missing key, never 0
- Bridge naming: serialized payloads use the camelCase keys of the
  mobile bridge (stepsToday, generatedAt, startDate, ...)
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class MetricId(StrEnum):
    # Cumulative quantities
    STEP_COUNT = "stepCount"
    DISTANCE_WALKING_RUNNING = "distanceWalkingRunning"
    ACTIVE_ENERGY_BURNED = "activeEnergyBurned"
    BASAL_ENERGY_BURNED = "basalEnergyBurned"
    FLIGHTS_CLIMBED = "flightsClimbed"
    EXERCISE_TIME = "appleExerciseTime"
    TIME_IN_DAYLIGHT = "timeInDaylight"

    # Latest-value quantities
    HEART_RATE = "heartRate"
    RESTING_HEART_RATE = "restingHeartRate"
    WALKING_HEART_RATE_AVERAGE = "walkingHeartRateAverage"
    HEART_RATE_VARIABILITY_SDNN = "heartRateVariabilitySDNN"
    VO2_MAX = "vo2Max"
    BLOOD_PRESSURE_SYSTOLIC = "bloodPressureSystolic"
    BLOOD_PRESSURE_DIASTOLIC = "bloodPressureDiastolic"
    ATRIAL_FIBRILLATION_BURDEN = "atrialFibrillationBurden"
    OXYGEN_SATURATION = "oxygenSaturation"
    BLOOD_GLUCOSE = "bloodGlucose"
    RESPIRATORY_RATE = "respiratoryRate"
    BODY_TEMPERATURE = "bodyTemperature"
    BODY_MASS = "bodyMass"

    # Interval categories
    SLEEP_ANALYSIS = "sleepAnalysis"
    STAND_HOUR = "appleStandHour"
    SLEEP_APNEA_EVENT = "sleepApneaEvent"

    # Composite queries
    WORKOUT = "workout"
    ACTIVITY_SUMMARY = "activitySummary"


class HealthUnit(StrEnum):
    COUNT = "count"
    KILOMETER = "km"
    KILOCALORIE = "kcal"
    MINUTE = "min"
    BEATS_PER_MINUTE = "count/min"
    MILLISECOND = "ms"
    VO2 = "ml/(kg*min)"
    MMHG = "mmHg"
    PERCENT = "%"
    MG_PER_DL = "mg/dL"
    CELSIUS = "degC"
    KILOGRAM = "kg"


class SleepStage(StrEnum):
    IN_BED = "inBed"
    ASLEEP_UNSPECIFIED = "asleepUnspecified"
    AWAKE = "awake"
    ASLEEP_CORE = "asleepCore"
    ASLEEP_DEEP = "asleepDeep"
    ASLEEP_REM = "asleepREM"
    UNKNOWN = "unknown"


ASLEEP_STAGES = frozenset(
    {
        SleepStage.ASLEEP_UNSPECIFIED,
        SleepStage.ASLEEP_CORE,
        SleepStage.ASLEEP_DEEP,
        SleepStage.ASLEEP_REM,
    }
)


class ScoreSource(StrEnum):
    TODAY = "today"
    LATEST_AVAILABLE = "latestAvailable"


class ApneaRiskLevel(StrEnum):
    NONE = "none"
    WATCH = "watch"
    HIGH = "high"


class SeriesBucket(StrEnum):
    HOUR = "hour"
    DAY = "day"


class SeriesStatistic(StrEnum):
    """How samples inside one bucket are combined."""

    SUM = "sum"
    AVERAGE = "average"


class SnapshotSource(StrEnum):
    """Where a snapshot's samples came from, as tagged on the bridge payload."""

    DEVICE = "healthkit"
    FIXTURE = "mock"


class BridgeModel(BaseModel):
    """Base for models serialized to the mobile bridge with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_bridge(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Sample(BridgeModel):
    """A single observation from the health store.

    Instantaneous readings have end == start; when a payload omits
    endDate the start timestamp is used.
    """

    model_config = ConfigDict(frozen=True)

    metric_id: MetricId
    value: float
    start: datetime = Field(alias="startDate")
    end: datetime = Field(alias="endDate")
    source_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_end_to_start(cls, data: Any) -> Any:
        if isinstance(data, dict):
            has_end = data.get("end") is not None or data.get("endDate") is not None
            if not has_end:
                start = data.get("start", data.get("startDate"))
                data = {**data, "endDate": start}
        return data


class HealthTrendPoint(BridgeModel):
    """One bucket of a trend series; `timestamp` is the bucket start."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    value: float
    unit: str


class IntervalSegment(BaseModel):
    """An interval-bearing sample classified into a sleep stage."""

    model_config = ConfigDict(frozen=True)

    stage: SleepStage
    start: datetime
    end: datetime
    sample: Sample | None = None

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


class SleepBlock(BaseModel):
    """A contiguous cluster of interval segments."""

    start: datetime
    end: datetime
    asleep_minutes: float = 0.0
    awake_minutes: float = 0.0
    in_bed_minutes: float = 0.0
    total_minutes: float = 0.0
    segments: list[IntervalSegment] = Field(default_factory=list)

    @classmethod
    def from_segments(cls, segments: list[IntervalSegment]) -> "SleepBlock":
        block = cls(
            start=segments[0].start,
            end=max(s.end for s in segments),
            segments=list(segments),
        )
        for segment in segments:
            minutes = segment.duration_minutes
            block.total_minutes += minutes
            if segment.stage in ASLEEP_STAGES:
                block.asleep_minutes += minutes
            elif segment.stage == SleepStage.AWAKE:
                block.awake_minutes += minutes
            elif segment.stage == SleepStage.IN_BED:
                block.in_bed_minutes += minutes
        return block


class SleepSummary(BaseModel):
    """Sleep aggregate over one window. Only exists when asleep_minutes > 0."""

    stage_minutes: dict[SleepStage, float]
    in_bed_minutes: float
    asleep_minutes: float = Field(gt=0)
    awake_minutes: float
    sample_count: int = Field(ge=0)
    sleep_score: int = Field(ge=45, le=98)
    score_source: ScoreSource
    window_start: datetime
    window_end: datetime
    samples: list[Sample] = Field(default_factory=list)


class ApneaSummary(BaseModel):
    event_count: int = Field(ge=0)
    total_minutes: float = Field(ge=0)
    lookback_days: int
    risk_level: ApneaRiskLevel
    reminder: str
    latest_event_at: datetime | None = None


class ActivitySummary(BaseModel):
    """Today's activity ring values and goals as reported by the provider."""

    active_energy_kcal: float | None = None
    move_goal_kcal: float | None = None
    exercise_minutes: float | None = None
    exercise_goal_minutes: float | None = None
    stand_hours: float | None = None
    stand_goal_hours: float | None = None


class WorkoutRecord(BridgeModel):
    model_config = ConfigDict(frozen=True)

    activity_type_code: int
    activity_type_name: str
    start: datetime = Field(alias="startDate")
    end: datetime = Field(alias="endDate")
    duration_minutes: float
    total_energy_kcal: float | None = None
    total_distance_km: float | None = None


class Snapshot(BridgeModel):
    """The unified point-in-time aggregation result.

    Empty sections are stored as None so they drop out of the payload.
    """

    model_config = ConfigDict(frozen=True)

    authorized: bool
    generated_at: datetime
    source: SnapshotSource | None = None
    note: str | None = None
    activity: dict[str, Any] | None = None
    sleep: dict[str, Any] | None = None
    heart: dict[str, Any] | None = None
    oxygen: dict[str, Any] | None = None
    metabolic: dict[str, Any] | None = None
    environment: dict[str, Any] | None = None
    body: dict[str, Any] | None = None
    workouts: list[WorkoutRecord] | None = None
    warnings: list[str] | None = None


SNAPSHOT_SECTIONS = ("activity", "sleep", "heart", "oxygen", "metabolic", "environment", "body")
