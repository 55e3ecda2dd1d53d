"""API endpoint tests using FastAPI TestClient.

These tests use dependency overrides to provide an aggregator backed by a
fixture provider with a fixed clock, testing the API layer in isolation
from any device bridge.
"""

import pytest
from fastapi.testclient import TestClient

from health.aggregator import SnapshotAggregator
from health.api import get_aggregator
from health.domain.models import MetricId
from health.providers.fixture import FixtureSampleProvider
from main import app
from tests.conftest import fixed_clock, load_fixture


def _client_for(payload: dict, **kwargs):
    provider = FixtureSampleProvider(payload)

    def override_aggregator():
        return SnapshotAggregator(provider, platform_version=18, clock=fixed_clock, **kwargs)

    app.dependency_overrides[get_aggregator] = override_aggregator
    return TestClient(app)


@pytest.fixture
def client():
    with _client_for(load_fixture("snapshot_payload.json")) as c:
        yield c
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    def test_health(self):
        with TestClient(app) as c:
            resp = c.get("/health")
            assert resp.status_code == 200
            assert resp.json() == {"status": "ok"}


class TestSnapshotEndpoint:
    def test_returns_camel_case_snapshot(self, client):
        resp = client.get("/api/v1/snapshot")
        assert resp.status_code == 200

        body = resp.json()
        data = body["data"]
        assert data["authorized"] is True
        assert data["generatedAt"] == "2024-03-15T09:00:00Z"
        assert data["source"] == "mock"
        assert data["heart"]["heartRateSeriesLast24h"][-1] == {
            "timestamp": "2024-03-15T08:00:00Z",
            "value": 66.0,
            "unit": "count/min",
        }
        assert data["activity"]["stepsToday"] == 8342
        assert data["oxygen"]["bloodOxygenPercent"] == 97.0
        assert data["sleep"]["sleepScore"] == 93
        assert data["workouts"][0]["activityTypeName"] == "run"
        assert "warnings" not in data
        assert body["meta"]["api_version"] == "v1"

    def test_unavailable_source(self):
        with _client_for({"available": False}) as c:
            resp = c.get("/api/v1/snapshot")
        app.dependency_overrides.clear()

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["authorized"] is False
        assert "note" in data
        assert "activity" not in data

    def test_provider_failure_returns_problem_json(self):
        payload = load_fixture("snapshot_payload.json")
        payload["failures"] = {MetricId.HEART_RATE.value: "authorization revoked"}
        with _client_for(payload) as c:
            resp = c.get("/api/v1/snapshot")
        app.dependency_overrides.clear()

        assert resp.status_code == 502
        assert resp.headers["content-type"] == "application/problem+json"
        body = resp.json()
        assert body["title"] == "Snapshot Query Failed"
        assert "heartRate" in body["detail"]
        assert body["instance"] == "/api/v1/snapshot"

    def test_partial_mode_returns_warnings(self):
        payload = load_fixture("snapshot_payload.json")
        payload["failures"] = {MetricId.HEART_RATE.value: "authorization revoked"}
        with _client_for(payload, failure_mode="partial") as c:
            resp = c.get("/api/v1/snapshot")
        app.dependency_overrides.clear()

        assert resp.status_code == 200
        assert resp.json()["data"]["warnings"] == ["heartRate: authorization revoked"]


class TestAuthorizationEndpoint:
    def test_authorized(self, client):
        resp = client.post("/api/v1/authorization")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"authorized": True}

    def test_unavailable_is_not_authorized(self):
        with _client_for({"available": False}) as c:
            resp = c.post("/api/v1/authorization")
        app.dependency_overrides.clear()

        assert resp.json()["data"] == {"authorized": False}


class TestErrorFormat:
    def test_unknown_route_is_problem_json(self, client):
        resp = client.get("/api/v1/unknown")
        assert resp.status_code == 404
        assert resp.headers["content-type"] == "application/problem+json"
        assert resp.json()["type"] == "about:blank"

    def test_wrong_method_is_problem_json(self, client):
        resp = client.post("/api/v1/snapshot")
        assert resp.status_code == 405
        assert resp.headers["content-type"] == "application/problem+json"


class TestRequestId:
    def test_generated_when_missing(self, client):
        resp = client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 36

    def test_caller_id_echoed_in_header_and_meta(self, client):
        resp = client.get("/api/v1/snapshot", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"
        assert resp.json()["meta"]["request_id"] == "req-123"
