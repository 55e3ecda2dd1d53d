"""Tests for trend series windows and bucketing."""

from datetime import UTC, datetime, timedelta

import pytest

from health.domain.models import MetricId, Sample, SeriesBucket, SeriesStatistic
from health.domain.series import bucket_floor, bucket_samples, series_query_name, series_window
from tests.conftest import NOW


def _reading(value: float, at: datetime) -> Sample:
    return Sample(metric_id=MetricId.HEART_RATE, value=value, start=at, end=at)


class TestSeriesWindow:
    @pytest.mark.parametrize(
        "bucket, count, expected_start",
        [
            (SeriesBucket.HOUR, None, datetime(2024, 3, 15, tzinfo=UTC)),
            (SeriesBucket.HOUR, 24, datetime(2024, 3, 14, 10, tzinfo=UTC)),
            (SeriesBucket.DAY, 7, datetime(2024, 3, 9, tzinfo=UTC)),
            (SeriesBucket.DAY, 30, datetime(2024, 2, 15, tzinfo=UTC)),
        ],
        ids=["hourly_today", "last_24h", "last_7d", "last_30d"],
    )
    def test_window_aligned_to_bucket(self, bucket, count, expected_start):
        now = NOW + timedelta(minutes=25)
        start, end = series_window(now, bucket, count)
        assert start == expected_start
        assert end == now

    def test_bucket_floor(self):
        moment = datetime(2024, 3, 15, 8, 59, 59, 999, tzinfo=UTC)
        assert bucket_floor(moment, SeriesBucket.HOUR) == datetime(2024, 3, 15, 8, tzinfo=UTC)
        assert bucket_floor(moment, SeriesBucket.DAY) == datetime(2024, 3, 15, tzinfo=UTC)


class TestBucketSamples:
    def test_boundaries(self):
        start = datetime(2024, 3, 15, 6, tzinfo=UTC)
        end = datetime(2024, 3, 15, 8, tzinfo=UTC)
        samples = [
            _reading(1, start - timedelta(seconds=1)),
            _reading(2, start),
            _reading(3, start + timedelta(minutes=59, seconds=59)),
            _reading(4, start + timedelta(hours=1)),
            _reading(5, end),
        ]
        points = bucket_samples(
            samples, start, end, SeriesBucket.HOUR, SeriesStatistic.SUM, "count"
        )

        assert [(p.timestamp, p.value) for p in points] == [
            (start, 5.0),
            (start + timedelta(hours=1), 4.0),
        ]

    def test_average_and_empty_buckets_skipped(self):
        start = datetime(2024, 3, 9, tzinfo=UTC)
        samples = [
            _reading(60, datetime(2024, 3, 14, 23, tzinfo=UTC)),
            _reading(70, datetime(2024, 3, 10, 7, tzinfo=UTC)),
            _reading(80, datetime(2024, 3, 14, 1, tzinfo=UTC)),
        ]
        points = bucket_samples(
            samples, start, NOW, SeriesBucket.DAY, SeriesStatistic.AVERAGE, "count/min"
        )

        assert [(p.timestamp.day, p.value) for p in points] == [(10, 70.0), (14, 70.0)]
        assert all(p.unit == "count/min" for p in points)

    def test_sorted_oldest_first(self):
        start = NOW - timedelta(hours=3)
        samples = [_reading(1, NOW - timedelta(minutes=10)), _reading(2, start)]
        points = bucket_samples(
            samples, start, NOW, SeriesBucket.HOUR, SeriesStatistic.SUM, "count"
        )
        assert [p.value for p in points] == [2.0, 1.0]

    def test_no_samples(self):
        assert bucket_samples([], NOW, NOW, SeriesBucket.DAY, SeriesStatistic.SUM, "kg") == []


def test_series_query_name():
    assert series_query_name(MetricId.HEART_RATE) == "heartRateSeries"
