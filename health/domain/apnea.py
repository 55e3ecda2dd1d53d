"""Breathing disturbance (apnea) risk classification.

The tier is a pure function of event count and total event minutes over
the lookback window:
- 0 events                      -> none
- <= 2 events and < 20 minutes  -> watch
- anything else                 -> high

Reminder text is localized and always ends with the not-a-diagnosis
disclaimer.
"""

from datetime import datetime, timedelta
from typing import Any

from health.domain.models import ApneaRiskLevel, ApneaSummary, MetricId
from health.domain.units import round_value
from health.providers.protocol import SampleProvider

APNEA_LOOKBACK_DAYS = 30
WATCH_MAX_EVENTS = 2
WATCH_MAX_MINUTES = 20.0

DISCLAIMERS: dict[str, str] = {
    "en": "This reminder is not a medical diagnosis; consult a doctor about any concerns.",
    "zh": "此提醒不能替代医学诊断，如有疑虑请咨询医生。",
}

_REMINDERS: dict[str, dict[ApneaRiskLevel, str]] = {
    "en": {
        ApneaRiskLevel.NONE: "No breathing disturbances were recorded in the last {days} days.",
        ApneaRiskLevel.WATCH: (
            "{count} breathing disturbance event(s) were recorded in the last {days} days. "
            "Keep an eye on sleep position, evening alcohol and nasal congestion."
        ),
        ApneaRiskLevel.HIGH: (
            "{count} breathing disturbance events were recorded in the last {days} days. "
            "Consider a sleep apnea screening."
        ),
    },
    "zh": {
        ApneaRiskLevel.NONE: "近{days}天未记录到呼吸紊乱事件。",
        ApneaRiskLevel.WATCH: "近{days}天记录到{count}次呼吸紊乱事件，请留意睡姿、晚间饮酒和鼻塞情况。",
        ApneaRiskLevel.HIGH: "近{days}天记录到{count}次呼吸紊乱事件，建议进行睡眠呼吸暂停筛查。",
    },
}


def classify_apnea_risk(event_count: int, total_minutes: float) -> ApneaRiskLevel:
    if event_count == 0:
        return ApneaRiskLevel.NONE
    if event_count <= WATCH_MAX_EVENTS and total_minutes < WATCH_MAX_MINUTES:
        return ApneaRiskLevel.WATCH
    return ApneaRiskLevel.HIGH


def apnea_reminder(
    risk: ApneaRiskLevel,
    event_count: int,
    locale: str = "en",
    lookback_days: int = APNEA_LOOKBACK_DAYS,
) -> str:
    """Guidance text for a tier. Unknown locales fall back to English."""
    if locale not in _REMINDERS:
        locale = "en"
    text = _REMINDERS[locale][risk].format(count=event_count, days=lookback_days)
    separator = "" if locale == "zh" else " "
    return f"{text}{separator}{DISCLAIMERS[locale]}"


async def build_apnea_summary(
    provider: SampleProvider,
    now: datetime,
    lookback_days: int = APNEA_LOOKBACK_DAYS,
    locale: str = "en",
) -> ApneaSummary:
    samples = await provider.query_interval_samples(
        MetricId.SLEEP_APNEA_EVENT, now - timedelta(days=lookback_days), now
    )
    total_minutes = sum(
        (s.end - s.start).total_seconds() / 60 for s in samples if s.end > s.start
    )
    risk = classify_apnea_risk(len(samples), total_minutes)
    return ApneaSummary(
        event_count=len(samples),
        total_minutes=total_minutes,
        lookback_days=lookback_days,
        risk_level=risk,
        reminder=apnea_reminder(risk, len(samples), locale, lookback_days),
        latest_event_at=max((s.end for s in samples), default=None),
    )


def apnea_section(summary: ApneaSummary) -> dict[str, Any]:
    """Sleep-section keys for the apnea summary."""
    section: dict[str, Any] = {
        "apneaEventCountLast30d": summary.event_count,
        "apneaTotalMinutesLast30d": round_value(summary.total_minutes, 1),
        "apneaRiskLevel": summary.risk_level.value,
        "apneaReminder": summary.reminder,
    }
    if summary.latest_event_at is not None:
        section["apneaLatestEventAt"] = summary.latest_event_at.isoformat()
    return section
