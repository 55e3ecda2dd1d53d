"""Shared test fixtures."""

import json
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from health.domain.models import IntervalSegment, SleepStage  # noqa: E402
from health.providers.fixture import FixtureSampleProvider  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
NOW = datetime(2024, 3, 15, 9, 0, tzinfo=UTC)
SNAPSHOT_PAYLOAD = FIXTURES_DIR / "snapshot_payload.json"


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES_DIR / name).read_text())


def fixed_clock() -> datetime:
    return NOW


def segment(stage: SleepStage, start_minute: float, end_minute: float) -> IntervalSegment:
    """A segment placed relative to NOW - 12h, in minutes."""
    origin = NOW - timedelta(hours=12)
    return IntervalSegment(
        stage=stage,
        start=origin + timedelta(minutes=start_minute),
        end=origin + timedelta(minutes=end_minute),
    )


def sleep_sample(code: int, start: datetime, minutes: float) -> dict:
    return {
        "value": code,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(minutes=minutes)).isoformat(),
    }


@pytest.fixture
def snapshot_payload():
    return load_fixture("snapshot_payload.json")


@pytest.fixture
def fixture_provider(snapshot_payload):
    return FixtureSampleProvider(snapshot_payload)
