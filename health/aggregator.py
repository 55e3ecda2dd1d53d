"""Parallel snapshot aggregator.

One get_snapshot() call fans out one query per metric (plus one per
trend series, named "<metric>Series"), joins them all, and assembles one
immutable Snapshot.

States: Idle -> CheckingAvailability -> Unauthorized (done)
                                     -> Querying -> AnyFailure (raise)
                                                 -> AllSettled -> Assembling -> Done

Error policy:
- NoDataError: the metric's key is simply absent
- unsupported on this platform: skipped with a note, never queried
- any other failure: the first one is kept; once every query has settled
  it is raised and no snapshot is returned (all_or_nothing). In partial
  mode failures become snapshot warnings instead.

Each call owns a fresh AggregationState; it is never shared across calls.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Literal

import structlog

from health.catalog import METRIC_CATALOG, SERIES_CATALOG, MetricSpec, QueryKind, SeriesSpec
from health.domain.activity import activity_goal_section
from health.domain.apnea import apnea_section, build_apnea_summary
from health.domain.capabilities import is_supported, supported_metrics, unsupported_note
from health.domain.models import (
    SNAPSHOT_SECTIONS,
    HealthTrendPoint,
    MetricId,
    Snapshot,
    WorkoutRecord,
)
from health.domain.series import series_query_name, series_window
from health.domain.sleep import build_sleep_summary, sleep_section
from health.domain.units import filter_bridge_safe, is_finite_bridge_safe, round_value
from health.providers.errors import NoDataError, ProviderFailure, ProviderTimeoutError
from health.providers.protocol import SampleProvider
from shared.config import settings
from shared.metrics import (
    provider_queries_total,
    provider_query_duration_seconds,
    snapshot_duration_seconds,
    snapshots_total,
)

logger = structlog.get_logger()

FailureMode = Literal["all_or_nothing", "partial"]

UNAVAILABLE_NOTE = "Health data is unavailable on this device"

# Stand-hour category value for an hour with at least one minute standing
STAND_HOUR_STOOD = 0


def local_now() -> datetime:
    return datetime.now().astimezone()


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class PlannedQuery:
    """One provider query of a snapshot. `name` labels its logs, metrics and failures."""

    name: str
    metric: MetricId
    run: Callable[[], Awaitable[None]]


@dataclass
class AggregationState:
    """Mutable state of one in-flight aggregation. Every mutation holds the lock."""

    failure_mode: FailureMode = "all_or_nothing"
    sections: dict[str, dict[str, Any]] = field(
        default_factory=lambda: {name: {} for name in SNAPSHOT_SECTIONS}
    )
    workouts: list[WorkoutRecord] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: ProviderFailure | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def set_value(self, section: str, key: str, value: float | None) -> None:
        if value is None or not is_finite_bridge_safe(value):
            return
        async with self.lock:
            self.sections[section][key] = round_value(value)

    async def merge_section(self, section: str, values: dict[str, Any] | None) -> None:
        if not values:
            return
        safe = filter_bridge_safe(values)
        async with self.lock:
            self.sections[section].update(safe)

    async def set_series(
        self,
        section: str,
        key: str,
        points: list[HealthTrendPoint],
        transform: Callable[[float], float] | None = None,
    ) -> None:
        """Store a trend series, dropping non-finite points. An empty series stays absent."""
        series = []
        for point in points:
            value = transform(point.value) if transform is not None else point.value
            if not is_finite_bridge_safe(value):
                continue
            series.append(
                point.model_copy(update={"value": round_value(value)}).to_bridge()
            )
        if not series:
            return
        async with self.lock:
            self.sections[section][key] = series

    async def set_workouts(self, records: list[WorkoutRecord]) -> None:
        async with self.lock:
            self.workouts = list(records)

    async def append_note(self, note: str) -> None:
        async with self.lock:
            self.notes.append(note)

    async def record_failure(self, failure: ProviderFailure) -> None:
        async with self.lock:
            if self.failure_mode == "partial":
                self.warnings.append(str(failure))
            elif self.error is None:
                self.error = failure


class SnapshotAggregator:
    def __init__(
        self,
        provider: SampleProvider,
        platform_version: int | None = None,
        failure_mode: FailureMode | None = None,
        query_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._provider = provider
        self._platform_version = (
            settings.platform_version if platform_version is None else platform_version
        )
        self._failure_mode: FailureMode = failure_mode or settings.failure_mode
        self._timeout = (
            settings.query_timeout_seconds
            if query_timeout_seconds is None
            else query_timeout_seconds
        )
        self._clock = clock

    async def request_authorization(self) -> bool:
        if not await self._provider.is_data_source_available():
            return False
        return await self._provider.request_authorization(
            supported_metrics(self._platform_version)
        )

    async def get_snapshot(self) -> Snapshot:
        start_time = time.monotonic()
        log = logger.bind(provider=self._provider.source_name)

        log.info("snapshot_checking_availability")
        if not await self._provider.is_data_source_available():
            log.info("snapshot_unauthorized")
            snapshots_total.labels(status="unauthorized").inc()
            return Snapshot(
                authorized=False,
                generated_at=self._clock(),
                source=self._provider.snapshot_source,
                note=UNAVAILABLE_NOTE,
            )

        state = AggregationState(failure_mode=self._failure_mode)
        now = self._clock()
        runnable: list[PlannedQuery] = []
        skipped: list[PlannedQuery] = []
        for query in self._plan_queries(state, now):
            if is_supported(query.metric, self._platform_version):
                runnable.append(query)
            else:
                skipped.append(query)

        # One note per metric, even when its value and series are both skipped
        for metric in dict.fromkeys(q.metric for q in skipped):
            await state.append_note(unsupported_note(metric))
            log.info("metric_skipped_unsupported", metric=metric.value)
        for query in skipped:
            provider_queries_total.labels(metric=query.name, outcome="skipped").inc()

        log.info("snapshot_querying", query_count=len(runnable), skipped=len(skipped))
        await asyncio.gather(*(self._run_query(state, q.name, q.run) for q in runnable))

        snapshot_duration_seconds.observe(time.monotonic() - start_time)
        if state.error is not None:
            log.warning(
                "snapshot_rejected", metric=state.error.metric, reason=state.error.reason
            )
            snapshots_total.labels(status="rejected").inc()
            raise state.error

        snapshot = self._assemble(state)
        snapshots_total.labels(status="assembled").inc()
        log.info(
            "snapshot_assembled",
            sections=[s for s in SNAPSHOT_SECTIONS if getattr(snapshot, s) is not None],
            workouts=len(state.workouts),
            warnings=len(state.warnings),
        )
        return snapshot

    def _plan_queries(self, state: AggregationState, now: datetime) -> list[PlannedQuery]:
        """Every query of one snapshot, before capability gating."""
        plan = [
            PlannedQuery(spec.metric_id.value, spec.metric_id, self._quantity_query(state, spec))
            for spec in METRIC_CATALOG
        ]
        plan.extend(
            PlannedQuery(
                series_query_name(spec.metric_id),
                spec.metric_id,
                self._series_query(state, spec, now),
            )
            for spec in SERIES_CATALOG
        )
        composites = {
            MetricId.STAND_HOUR: lambda: self._stand_hours(state, now),
            MetricId.SLEEP_ANALYSIS: lambda: self._sleep(state, now),
            MetricId.SLEEP_APNEA_EVENT: lambda: self._apnea(state, now),
            MetricId.ACTIVITY_SUMMARY: lambda: self._activity_goals(state, now),
            MetricId.WORKOUT: lambda: self._workouts(state, now),
        }
        plan.extend(PlannedQuery(m.value, m, run) for m, run in composites.items())
        return plan

    async def _run_query(
        self,
        state: AggregationState,
        name: str,
        query: Callable[[], Awaitable[None]],
    ) -> None:
        start_time = time.monotonic()
        outcome = "ok"
        try:
            await asyncio.wait_for(query(), timeout=self._timeout)
        except NoDataError:
            outcome = "no_data"
            logger.debug("metric_no_data", metric=name)
        except TimeoutError:
            outcome = "failed"
            logger.warning("metric_query_timed_out", metric=name, timeout=self._timeout)
            await state.record_failure(ProviderTimeoutError(name, self._timeout))
        except ProviderFailure as exc:
            outcome = "failed"
            logger.warning("metric_query_failed", metric=name, reason=exc.reason)
            await state.record_failure(exc)
        except Exception as exc:
            outcome = "failed"
            logger.exception("metric_query_crashed", metric=name)
            failure = ProviderFailure(name, f"{type(exc).__name__}: {exc}")
            failure.__cause__ = exc
            await state.record_failure(failure)
        finally:
            provider_queries_total.labels(metric=name, outcome=outcome).inc()
            provider_query_duration_seconds.labels(metric=name).observe(
                time.monotonic() - start_time
            )

    def _quantity_query(
        self, state: AggregationState, spec: MetricSpec
    ) -> Callable[[], Awaitable[None]]:
        async def query() -> None:
            if spec.kind == QueryKind.CUMULATIVE_TODAY:
                value = await self._provider.query_cumulative_today(spec.metric_id, spec.unit)
            else:
                value = await self._provider.query_latest_value(spec.metric_id, spec.unit)
            if value is None:
                return
            if spec.transform is not None:
                value = spec.transform(value)
            await state.set_value(spec.section, spec.key, value)
            if spec.derive is not None and is_finite_bridge_safe(value):
                await state.merge_section(spec.section, spec.derive(value))

        return query

    def _series_query(
        self, state: AggregationState, spec: SeriesSpec, now: datetime
    ) -> Callable[[], Awaitable[None]]:
        async def query() -> None:
            start, end = series_window(now, spec.bucket, spec.bucket_count)
            points = await self._provider.query_series(
                spec.metric_id, spec.unit, start, end, spec.bucket, spec.statistic
            )
            await state.set_series(spec.section, spec.key, points, spec.transform)

        return query

    async def _stand_hours(self, state: AggregationState, now: datetime) -> None:
        samples = await self._provider.query_interval_samples(
            MetricId.STAND_HOUR, start_of_day(now), now
        )
        stood = sum(1 for s in samples if s.value == STAND_HOUR_STOOD)
        await state.set_value("activity", "standHoursToday", stood)

    async def _sleep(self, state: AggregationState, now: datetime) -> None:
        summary = await build_sleep_summary(
            self._provider,
            now,
            self._platform_version,
            primary_window_hours=settings.sleep_primary_window_hours,
            fallback_lookback_days=settings.sleep_fallback_lookback_days,
            fallback_gap_minutes=settings.fallback_night_gap_minutes,
        )
        if summary is None:
            return
        await state.merge_section(
            "sleep",
            sleep_section(summary, self._platform_version, settings.main_block_gap_minutes),
        )

    async def _apnea(self, state: AggregationState, now: datetime) -> None:
        summary = await build_apnea_summary(
            self._provider,
            now,
            lookback_days=settings.apnea_lookback_days,
            locale=settings.reminder_locale,
        )
        await state.merge_section("sleep", apnea_section(summary))

    async def _activity_goals(self, state: AggregationState, now: datetime) -> None:
        summary = await self._provider.query_activity_summary(now.date())
        if summary is None:
            return
        await state.merge_section("activity", activity_goal_section(summary))

    async def _workouts(self, state: AggregationState, now: datetime) -> None:
        records = await self._provider.query_workouts(
            now - timedelta(days=settings.workout_lookback_days), now, settings.workout_limit
        )
        await state.set_workouts(records)

    def _assemble(self, state: AggregationState) -> Snapshot:
        sections = {
            name: dict(values) if values else None for name, values in state.sections.items()
        }
        return Snapshot(
            authorized=True,
            generated_at=self._clock(),
            source=self._provider.snapshot_source,
            note="; ".join(state.notes) if state.notes else None,
            workouts=list(state.workouts),
            warnings=list(state.warnings) if state.warnings else None,
            **sections,
        )
