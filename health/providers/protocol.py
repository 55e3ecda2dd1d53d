"""Sample provider protocol for device health stores.

Both fixture and live providers implement this interface.
The aggregator depends only on the protocol, never on concrete providers.
Every query may raise NoDataError or ProviderFailure.
"""

from datetime import date, datetime
from typing import Protocol, runtime_checkable

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


@runtime_checkable
class SampleProvider(Protocol):
    """Common interface for all health sample sources."""

    source_name: str
    snapshot_source: SnapshotSource

    async def is_data_source_available(self) -> bool: ...

    async def request_authorization(self, metrics: set[MetricId]) -> bool:
        """Ask the user for read access to `metrics`. Returns whether it was granted."""
        ...

    async def query_latest_value(self, metric: MetricId, unit: HealthUnit) -> float | None:
        """Most recent sample value in `unit`, or None when the store has no sample."""
        ...

    async def query_cumulative_today(self, metric: MetricId, unit: HealthUnit) -> float | None:
        """Sum of samples from local start of day until now, in `unit`."""
        ...

    async def query_series(
        self,
        metric: MetricId,
        unit: HealthUnit,
        start: datetime,
        end: datetime,
        bucket: SeriesBucket,
        statistic: SeriesStatistic,
    ) -> list[HealthTrendPoint]:
        """One point per non-empty bucket in [start, end), oldest first."""
        ...

    async def query_interval_samples(
        self, category: MetricId, start: datetime, end: datetime
    ) -> list[Sample]:
        """Category samples whose start falls in [start, end)."""
        ...

    async def query_workouts(
        self, start: datetime, end: datetime, limit: int
    ) -> list[WorkoutRecord]:
        """Workouts in the window, most recent first, at most `limit` records."""
        ...

    async def query_activity_summary(self, day: date) -> ActivitySummary | None: ...
