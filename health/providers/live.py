"""Live provider: queries the device-side health bridge over HTTP.

Uses fetch_with_retry for transient-only retry (429/5xx/timeout).
A 404 whose problem type ends in "no-data" is the bridge's "no samples
match this predicate" answer and maps to NoDataError. Every other
non-2xx response, and any transport error left after retries, maps to
ProviderFailure.
"""

from datetime import date, datetime
from typing import Any

import httpx
import structlog

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
from health.domain.series import series_query_name
from health.domain.workouts import build_workout_record
from health.providers.errors import NoDataError, ProviderFailure
from health.providers.http_client import TransientHTTPError, fetch_with_retry
from shared.config import settings

logger = structlog.get_logger()

NO_DATA_PROBLEM_SUFFIX = "no-data"


def _is_no_data(response: httpx.Response) -> bool:
    if response.status_code != 404:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and str(body.get("type", "")).endswith(NO_DATA_PROBLEM_SUFFIX)


class HttpSampleProvider:
    """Live-mode provider: every query is one HTTP call to the device bridge."""

    source_name = "live"
    snapshot_source = SnapshotSource.DEVICE

    def __init__(
        self,
        base_url: str | None = None,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.provider_base_url).rstrip("/")
        token = settings.provider_access_token if access_token is None else access_token
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client

    async def _request(
        self, metric: str, method: str, path: str, **kwargs: Any
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = await fetch_with_retry(
                    self._client, method, url, headers=self._headers, **kwargs
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await fetch_with_retry(
                        client, method, url, headers=self._headers, **kwargs
                    )
        except TransientHTTPError as exc:
            raise ProviderFailure(metric, f"bridge unavailable (HTTP {exc.status_code})") from exc
        except httpx.HTTPError as exc:
            raise ProviderFailure(metric, f"bridge request failed: {exc!r}") from exc

        if _is_no_data(response):
            raise NoDataError(metric)
        if response.is_error:
            logger.warning(
                "bridge_request_rejected",
                metric=metric,
                status_code=response.status_code,
                path=path,
            )
            raise ProviderFailure(metric, f"HTTP {response.status_code}: {response.text[:200]}")
        return response.json()

    async def is_data_source_available(self) -> bool:
        body = await self._request("availability", "GET", "/availability")
        return bool(body.get("available", False))

    async def request_authorization(self, metrics: set[MetricId]) -> bool:
        body = await self._request(
            "authorization",
            "POST",
            "/authorization",
            json={"metrics": sorted(m.value for m in metrics)},
        )
        return bool(body.get("authorized", False))

    async def query_latest_value(self, metric: MetricId, unit: HealthUnit) -> float | None:
        body = await self._request(
            metric.value, "GET", f"/quantities/{metric.value}/latest", params={"unit": unit.value}
        )
        return body.get("value")

    async def query_cumulative_today(self, metric: MetricId, unit: HealthUnit) -> float | None:
        body = await self._request(
            metric.value, "GET", f"/quantities/{metric.value}/today", params={"unit": unit.value}
        )
        return body.get("value")

    async def query_series(
        self,
        metric: MetricId,
        unit: HealthUnit,
        start: datetime,
        end: datetime,
        bucket: SeriesBucket,
        statistic: SeriesStatistic,
    ) -> list[HealthTrendPoint]:
        body = await self._request(
            series_query_name(metric),
            "GET",
            f"/quantities/{metric.value}/series",
            params={
                "unit": unit.value,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "bucket": bucket.value,
                "statistic": statistic.value,
            },
        )
        return [
            HealthTrendPoint.model_validate({"unit": unit.value, **raw})
            for raw in body.get("points", [])
        ]

    async def query_interval_samples(
        self, category: MetricId, start: datetime, end: datetime
    ) -> list[Sample]:
        body = await self._request(
            category.value,
            "GET",
            f"/categories/{category.value}/samples",
            params={"start": start.isoformat(), "end": end.isoformat()},
        )
        return [
            Sample.model_validate({**raw, "metricId": category})
            for raw in body.get("samples", [])
        ]

    async def query_workouts(
        self, start: datetime, end: datetime, limit: int
    ) -> list[WorkoutRecord]:
        body = await self._request(
            MetricId.WORKOUT.value,
            "GET",
            "/workouts",
            params={"start": start.isoformat(), "end": end.isoformat(), "limit": limit},
        )
        return [
            build_workout_record(
                raw["activityTypeCode"],
                datetime.fromisoformat(raw["startDate"]),
                datetime.fromisoformat(raw["endDate"]),
                raw.get("totalEnergyKcal"),
                raw.get("totalDistanceKm"),
            )
            for raw in body.get("workouts", [])
        ]

    async def query_activity_summary(self, day: date) -> ActivitySummary | None:
        body = await self._request(
            MetricId.ACTIVITY_SUMMARY.value,
            "GET",
            "/activity-summary",
            params={"day": day.isoformat()},
        )
        return ActivitySummary(
            active_energy_kcal=body.get("activeEnergyKcal"),
            move_goal_kcal=body.get("moveGoalKcal"),
            exercise_minutes=body.get("exerciseMinutes"),
            exercise_goal_minutes=body.get("exerciseGoalMinutes"),
            stand_hours=body.get("standHours"),
            stand_goal_hours=body.get("standGoalHours"),
        )
