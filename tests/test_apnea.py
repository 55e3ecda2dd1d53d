"""Parametrized tests for breathing disturbance risk tiers and reminders."""

from datetime import UTC, datetime, timedelta

import pytest

from health.domain.apnea import (
    DISCLAIMERS,
    apnea_reminder,
    apnea_section,
    build_apnea_summary,
    classify_apnea_risk,
)
from health.domain.models import ApneaRiskLevel
from health.providers.fixture import FixtureSampleProvider
from tests.conftest import NOW


@pytest.mark.parametrize(
    "event_count, total_minutes, expected",
    [
        (0, 0.0, ApneaRiskLevel.NONE),
        (0, 45.0, ApneaRiskLevel.NONE),
        (1, 19.0, ApneaRiskLevel.WATCH),
        (2, 19.9, ApneaRiskLevel.WATCH),
        (1, 20.0, ApneaRiskLevel.HIGH),
        (3, 0.0, ApneaRiskLevel.HIGH),
        (12, 95.0, ApneaRiskLevel.HIGH),
    ],
    ids=[
        "no_events",
        "no_events_any_minutes",
        "one_short_event",
        "two_events_under_limit",
        "minutes_at_limit",
        "three_events",
        "many_events",
    ],
)
def test_classify_apnea_risk(event_count, total_minutes, expected):
    assert classify_apnea_risk(event_count, total_minutes) == expected


class TestReminder:
    @pytest.mark.parametrize("locale", ["en", "zh"])
    @pytest.mark.parametrize("risk", list(ApneaRiskLevel))
    def test_always_ends_with_disclaimer(self, locale, risk):
        text = apnea_reminder(risk, 3, locale)
        assert text.endswith(DISCLAIMERS[locale])

    def test_mentions_count_and_window(self):
        text = apnea_reminder(ApneaRiskLevel.HIGH, 5, "en", lookback_days=30)
        assert "5 breathing disturbance events" in text
        assert "30 days" in text

    def test_unknown_locale_falls_back_to_english(self):
        assert apnea_reminder(ApneaRiskLevel.NONE, 0, "fr") == apnea_reminder(
            ApneaRiskLevel.NONE, 0, "en"
        )


def _event(start: datetime, minutes: float) -> dict:
    return {
        "value": 1,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(minutes=minutes)).isoformat(),
    }


class TestBuildApneaSummary:
    async def test_counts_events_in_lookback(self):
        latest = NOW - timedelta(days=2)
        provider = FixtureSampleProvider(
            {
                "intervals": {
                    "sleepApneaEvent": [
                        _event(NOW - timedelta(days=40), 30),  # outside 30 days
                        _event(NOW - timedelta(days=12), 8),
                        _event(latest, 6),
                    ]
                }
            }
        )
        summary = await build_apnea_summary(provider, NOW)

        assert summary.event_count == 2
        assert summary.total_minutes == 14
        assert summary.risk_level == ApneaRiskLevel.WATCH
        assert summary.latest_event_at == latest + timedelta(minutes=6)
        assert summary.lookback_days == 30

    async def test_no_events_is_none_risk(self):
        provider = FixtureSampleProvider({"intervals": {"sleepApneaEvent": []}})
        summary = await build_apnea_summary(provider, NOW, locale="zh")

        assert summary.risk_level == ApneaRiskLevel.NONE
        assert summary.latest_event_at is None
        assert summary.reminder.endswith(DISCLAIMERS["zh"])

    async def test_section_keys(self, fixture_provider):
        summary = await build_apnea_summary(fixture_provider, NOW)
        section = apnea_section(summary)

        assert section == {
            "apneaEventCountLast30d": 1,
            "apneaTotalMinutesLast30d": 12.0,
            "apneaRiskLevel": "watch",
            "apneaReminder": summary.reminder,
            "apneaLatestEventAt": datetime(2024, 3, 10, 3, 12, tzinfo=UTC).isoformat(),
        }
