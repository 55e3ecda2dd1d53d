"""Fixture provider: serves samples from a canned payload (no device, no HTTP).

Payload shape (all keys optional):
    {
      "available": true,
      "authorized": true,
      "latest": {"heartRate": 62, "oxygenSaturation": 0.97},
      "today": {"stepCount": 8342},
      "intervals": {"sleepAnalysis": [{"value": 3, "startDate": "...", "endDate": "..."}]},
      "workouts": [{"activityTypeCode": 37, "startDate": "...", "endDate": "...",
                    "totalEnergyKcal": 310, "totalDistanceKm": 5.2}],
      "activitySummary": {"activeEnergyKcal": 350, "moveGoalKcal": 500},
      "series": {"heartRate": [{"value": 64, "startDate": "..."}]},
      "failures": {"heartRate": "authorization revoked"}
    }

Metrics missing from the payload raise NoDataError, like a store with no
samples for the predicate. Metrics listed under "failures" raise
ProviderFailure with the given reason; a series query is listed under its
own name ("heartRateSeries"). Series readings are raw samples, bucketed
here the way the device store buckets its statistics.
"""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any

from pydantic.alias_generators import to_snake

from health.domain.models import (
    ActivitySummary,
    HealthTrendPoint,
    HealthUnit,
    MetricId,
    Sample,
    SeriesBucket,
    SeriesStatistic,
    SnapshotSource,
    WorkoutRecord,
)
from health.domain.series import bucket_samples, series_query_name
from health.domain.workouts import build_workout_record
from health.providers.errors import NoDataError, ProviderFailure


def _parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value)


class FixtureSampleProvider:
    """Fixture-mode provider: answers every query from an in-memory payload."""

    source_name = "fixture"
    snapshot_source = SnapshotSource.FIXTURE

    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self._payload = payload or {}
        self.queries: list[str] = []

    @classmethod
    def from_file(cls, path: str | Path) -> "FixtureSampleProvider":
        return cls(json.loads(Path(path).read_text()))

    def _check_failure(self, metric: MetricId, name: str | None = None) -> None:
        name = name or metric.value
        self.queries.append(name)
        reason = self._payload.get("failures", {}).get(name)
        if reason is not None:
            raise ProviderFailure(name, reason)

    async def is_data_source_available(self) -> bool:
        return bool(self._payload.get("available", False))

    async def request_authorization(self, metrics: set[MetricId]) -> bool:
        return bool(self._payload.get("authorized", True))

    async def query_latest_value(self, metric: MetricId, unit: HealthUnit) -> float | None:
        self._check_failure(metric)
        values = self._payload.get("latest", {})
        if metric.value not in values:
            raise NoDataError(metric.value)
        return values[metric.value]

    async def query_cumulative_today(self, metric: MetricId, unit: HealthUnit) -> float | None:
        self._check_failure(metric)
        values = self._payload.get("today", {})
        if metric.value not in values:
            raise NoDataError(metric.value)
        return values[metric.value]

    async def query_series(
        self,
        metric: MetricId,
        unit: HealthUnit,
        start: datetime,
        end: datetime,
        bucket: SeriesBucket,
        statistic: SeriesStatistic,
    ) -> list[HealthTrendPoint]:
        name = series_query_name(metric)
        self._check_failure(metric, name)
        raw_samples = self._payload.get("series", {}).get(metric.value)
        if raw_samples is None:
            raise NoDataError(name)
        samples = [Sample.model_validate({**raw, "metricId": metric}) for raw in raw_samples]
        return bucket_samples(samples, start, end, bucket, statistic, unit.value)

    async def query_interval_samples(
        self, category: MetricId, start: datetime, end: datetime
    ) -> list[Sample]:
        self._check_failure(category)
        raw_samples = self._payload.get("intervals", {}).get(category.value)
        if raw_samples is None:
            raise NoDataError(category.value)
        samples = [Sample.model_validate({**raw, "metricId": category}) for raw in raw_samples]
        return [s for s in samples if start <= s.start < end]

    async def query_workouts(
        self, start: datetime, end: datetime, limit: int
    ) -> list[WorkoutRecord]:
        self._check_failure(MetricId.WORKOUT)
        records = [
            build_workout_record(
                raw["activityTypeCode"],
                _parse_time(raw["startDate"]),
                _parse_time(raw["endDate"]),
                raw.get("totalEnergyKcal"),
                raw.get("totalDistanceKm"),
            )
            for raw in self._payload.get("workouts", [])
        ]
        in_window = [r for r in records if start <= r.start < end]
        in_window.sort(key=lambda r: r.end, reverse=True)
        return in_window[:limit]

    async def query_activity_summary(self, day: date) -> ActivitySummary | None:
        self._check_failure(MetricId.ACTIVITY_SUMMARY)
        raw = self._payload.get("activitySummary")
        if raw is None:
            raise NoDataError(MetricId.ACTIVITY_SUMMARY.value)
        return ActivitySummary(**{to_snake(k): v for k, v in raw.items()})
