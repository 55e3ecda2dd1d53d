"""Trend series: bucketed readings for the dashboard charts.

A series window is aligned to its bucket size. "Today" hourly series run
from local midnight; the rolling ones (last 24 h, 7 d, 30 d) cover the
current bucket plus the preceding ones, so the oldest bucket is always
whole. Each point is stamped with its bucket start, and empty buckets
produce no point.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from health.domain.models import (
    HealthTrendPoint,
    MetricId,
    Sample,
    SeriesBucket,
    SeriesStatistic,
)

BUCKET_STEP = {
    SeriesBucket.HOUR: timedelta(hours=1),
    SeriesBucket.DAY: timedelta(days=1),
}


def series_query_name(metric: MetricId) -> str:
    """Label of a metric's series query in logs, metrics and failures."""
    return f"{metric.value}Series"


def bucket_floor(moment: datetime, bucket: SeriesBucket) -> datetime:
    if bucket == SeriesBucket.HOUR:
        return moment.replace(minute=0, second=0, microsecond=0)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def series_window(
    now: datetime, bucket: SeriesBucket, bucket_count: int | None
) -> tuple[datetime, datetime]:
    """[start, end) of a series ending now. No bucket_count means since local midnight."""
    if bucket_count is None:
        return bucket_floor(now, SeriesBucket.DAY), now
    start = bucket_floor(now, bucket) - BUCKET_STEP[bucket] * (bucket_count - 1)
    return start, now


def bucket_samples(
    samples: Iterable[Sample],
    start: datetime,
    end: datetime,
    bucket: SeriesBucket,
    statistic: SeriesStatistic,
    unit: str,
) -> list[HealthTrendPoint]:
    """Combine the samples starting in [start, end) into one point per non-empty bucket."""
    buckets: dict[datetime, list[float]] = {}
    for sample in samples:
        if not start <= sample.start < end:
            continue
        key = bucket_floor(sample.start.astimezone(start.tzinfo), bucket)
        buckets.setdefault(key, []).append(sample.value)

    points = []
    for timestamp in sorted(buckets):
        values = buckets[timestamp]
        if statistic == SeriesStatistic.SUM:
            value = sum(values)
        else:
            value = sum(values) / len(values)
        points.append(HealthTrendPoint(timestamp=timestamp, value=value, unit=unit))
    return points
