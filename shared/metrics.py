"""Prometheus metrics for snapshot aggregation observability.

Counters and histograms per provider query and per snapshot.
Exposed via /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, make_asgi_app

# Provider query counters
provider_queries_total = Counter(
    "provider_queries_total",
    "Total sample provider queries issued by the aggregator",
    ["metric", "outcome"],  # outcome: ok, no_data, failed, skipped
)

snapshots_total = Counter(
    "snapshots_total",
    "Total snapshot aggregations",
    ["status"],  # status: assembled, unauthorized, rejected
)

# API counters
api_requests_total = Counter(
    "api_requests_total",
    "Total API requests",
    ["endpoint", "method", "status_code"],
)

# Histograms
provider_query_duration_seconds = Histogram(
    "provider_query_duration_seconds",
    "Duration of a single sample provider query",
    ["metric"],
)

snapshot_duration_seconds = Histogram(
    "snapshot_duration_seconds",
    "Duration of a full snapshot aggregation",
)

api_response_duration_seconds = Histogram(
    "api_response_duration_seconds",
    "Duration of API responses",
    ["endpoint"],
)


def create_metrics_app():
    """Create ASGI app for /metrics endpoint."""
    return make_asgi_app()
