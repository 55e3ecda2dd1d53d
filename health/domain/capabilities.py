"""Capability table: which metrics the device platform can be asked for.

Metrics missing from MIN_PLATFORM_VERSION are available everywhere.
A metric below its minimum version is skipped with a note, never queried.
"""

from health.domain.models import MetricId

MIN_PLATFORM_VERSION: dict[MetricId, int] = {
    MetricId.ATRIAL_FIBRILLATION_BURDEN: 16,
    MetricId.TIME_IN_DAYLIGHT: 17,
    MetricId.SLEEP_APNEA_EVENT: 18,
}


def is_supported(metric: MetricId, platform_version: int) -> bool:
    return platform_version >= MIN_PLATFORM_VERSION.get(metric, 0)


def unsupported_note(metric: MetricId) -> str:
    return f"{metric.value} requires platform version {MIN_PLATFORM_VERSION[metric]}+"


def supported_metrics(platform_version: int) -> set[MetricId]:
    """Metrics to request read access for on this platform."""
    return {m for m in MetricId if is_supported(m, platform_version)}
