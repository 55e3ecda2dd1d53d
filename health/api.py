"""FastAPI router for the health snapshot bridge.

Endpoints:
- GET  /api/v1/snapshot       one aggregated, bridge-safe snapshot
- POST /api/v1/authorization  request read access for every supported metric
"""

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from health.aggregator import SnapshotAggregator
from health.providers.errors import ProviderFailure
from health.providers.factory import get_provider
from shared.config import settings
from shared.exceptions import AuthorizationRequestError, SnapshotQueryError
from shared.metrics import api_requests_total, api_response_duration_seconds
from shared.middleware import request_id_var

router = APIRouter(prefix=f"/api/{settings.api_version}")


def _meta() -> dict[str, Any]:
    return {
        "request_id": request_id_var.get(""),
        "timestamp": datetime.now(UTC).isoformat(),
        "api_version": settings.api_version,
    }


def get_aggregator() -> SnapshotAggregator:
    return SnapshotAggregator(get_provider())


@router.get("/snapshot")
async def get_snapshot(aggregator: SnapshotAggregator = Depends(get_aggregator)):
    """Aggregate every supported metric into one snapshot.

    A genuine provider failure rejects the whole snapshot with 502 unless
    the service runs in partial mode, where failures become warnings.
    """
    start_time = time.monotonic()
    try:
        snapshot = await aggregator.get_snapshot()
    except ProviderFailure as exc:
        api_requests_total.labels(endpoint="snapshot", method="GET", status_code="502").inc()
        raise SnapshotQueryError(exc.metric, exc.reason) from exc

    duration = time.monotonic() - start_time
    api_requests_total.labels(endpoint="snapshot", method="GET", status_code="200").inc()
    api_response_duration_seconds.labels(endpoint="snapshot").observe(duration)

    return {"data": snapshot.to_bridge(), "meta": _meta()}


@router.post("/authorization")
async def request_authorization(aggregator: SnapshotAggregator = Depends(get_aggregator)):
    """Ask the platform for read access. `authorized` is false when unavailable or denied."""
    start_time = time.monotonic()
    try:
        authorized = await aggregator.request_authorization()
    except ProviderFailure as exc:
        api_requests_total.labels(endpoint="authorization", method="POST", status_code="502").inc()
        raise AuthorizationRequestError(exc.reason) from exc

    duration = time.monotonic() - start_time
    api_requests_total.labels(endpoint="authorization", method="POST", status_code="200").inc()
    api_response_duration_seconds.labels(endpoint="authorization").observe(duration)

    return {"data": {"authorized": authorized}, "meta": _meta()}
