"""Sleep summary builder.

Turns sleep-analysis category samples into stage totals, a heuristic
sleep score and the bridge's sleep section.

Lookup policy:
1. Primary window: the trailing 36 hours. If it holds any asleep time,
   the summary is tagged "today".
2. Fallback: the trailing 365 days are clustered into nights (2 h gap
   tolerance) and scanned newest to oldest. The first night with asleep
   time is summarized on its own samples and tagged "latestAvailable".
3. Neither yields sleep: no summary at all (the section is omitted rather
   than reported with a zero score).

The score is a wellness heuristic, not a diagnostic measure.
"""

import math
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

import structlog

from health.domain.clustering import (
    FALLBACK_NIGHT_GAP_MINUTES,
    MAIN_BLOCK_GAP_MINUTES,
    build_sleep_blocks,
    choose_main_sleep_block,
    cluster_segments,
)
from health.domain.models import (
    ASLEEP_STAGES,
    IntervalSegment,
    MetricId,
    Sample,
    ScoreSource,
    SleepStage,
    SleepSummary,
)
from health.domain.units import round_value
from health.providers.errors import NoDataError
from health.providers.protocol import SampleProvider

logger = structlog.get_logger()

PRIMARY_WINDOW_HOURS = 36
FALLBACK_LOOKBACK_DAYS = 365

# Raw stage codes by the platform version that introduced them. Each row
# is the complete mapping from that version on; codes not in the row
# classify as UNKNOWN.
SLEEP_STAGE_TABLES: dict[int, dict[int, SleepStage]] = {
    0: {
        0: SleepStage.IN_BED,
        1: SleepStage.ASLEEP_UNSPECIFIED,
    },
    16: {
        0: SleepStage.IN_BED,
        1: SleepStage.ASLEEP_UNSPECIFIED,
        2: SleepStage.AWAKE,
        3: SleepStage.ASLEEP_CORE,
        4: SleepStage.ASLEEP_DEEP,
        5: SleepStage.ASLEEP_REM,
    },
}

SleepScorer = Callable[[float, float, float, float], int]


def stage_table_for(platform_version: int) -> dict[int, SleepStage]:
    version = max(v for v in SLEEP_STAGE_TABLES if v <= platform_version)
    return SLEEP_STAGE_TABLES[version]


def classify_stage(code: float, platform_version: int) -> SleepStage:
    if not math.isfinite(code) or code != int(code):
        return SleepStage.UNKNOWN
    return stage_table_for(platform_version).get(int(code), SleepStage.UNKNOWN)


def segments_from_samples(
    samples: Iterable[Sample], platform_version: int
) -> list[IntervalSegment]:
    """Classify samples into segments, dropping those without positive duration."""
    segments = []
    for sample in samples:
        if sample.end <= sample.start:
            continue
        segments.append(
            IntervalSegment(
                stage=classify_stage(sample.value, platform_version),
                start=sample.start,
                end=sample.end,
                sample=sample,
            )
        )
    return segments


def stage_totals(segments: Iterable[IntervalSegment]) -> dict[SleepStage, float]:
    totals = {stage: 0.0 for stage in SleepStage if stage != SleepStage.UNKNOWN}
    for segment in segments:
        if segment.stage in totals:
            totals[segment.stage] += segment.duration_minutes
    return totals


def asleep_minutes(totals: dict[SleepStage, float]) -> float:
    return sum(minutes for stage, minutes in totals.items() if stage in ASLEEP_STAGES)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def sleep_score(asleep: float, awake: float, deep: float, rem: float) -> int:
    """Heuristic 45-98 sleep quality score.

    Centered on 450 asleep minutes; awake time costs 0.45/min, deep and
    REM time add 0.03/min and 0.02/min.
    """
    base = 95 - abs(asleep - 450) * 0.08 - awake * 0.45 + deep * 0.03 + rem * 0.02
    return int(round_value(_clamp(base, 45, 98), 0))


def summarize_segments(
    segments: list[IntervalSegment],
    samples: list[Sample],
    score_source: ScoreSource,
    window_start: datetime,
    window_end: datetime,
    scorer: SleepScorer = sleep_score,
) -> SleepSummary | None:
    """Summarize a window. Returns None when it holds no asleep time."""
    totals = stage_totals(segments)
    asleep = asleep_minutes(totals)
    if asleep <= 0:
        return None

    awake = totals[SleepStage.AWAKE]
    return SleepSummary(
        stage_minutes=totals,
        in_bed_minutes=totals[SleepStage.IN_BED],
        asleep_minutes=asleep,
        awake_minutes=awake,
        sample_count=len(samples),
        sleep_score=scorer(
            asleep, awake, totals[SleepStage.ASLEEP_DEEP], totals[SleepStage.ASLEEP_REM]
        ),
        score_source=score_source,
        window_start=window_start,
        window_end=window_end,
        samples=samples,
    )


def latest_available_summary(
    segments: list[IntervalSegment],
    max_gap_minutes: float = FALLBACK_NIGHT_GAP_MINUTES,
    scorer: SleepScorer = sleep_score,
    samples: list[Sample] | None = None,
) -> SleepSummary | None:
    """Summarize the most recent night that holds any asleep time.

    A night's samples are every sample in `samples` that starts inside the
    night's window, zero-duration ones included, so sample_count follows
    the same rule as the primary window. Without `samples`, the samples
    behind the night's segments are used.
    """
    for cluster in reversed(cluster_segments(segments, max_gap_minutes)):
        window_start = cluster[0].start
        window_end = max(s.end for s in cluster)
        if samples is None:
            night = [s.sample for s in cluster if s.sample is not None]
        else:
            night = [s for s in samples if window_start <= s.start <= window_end]
        summary = summarize_segments(
            cluster,
            night,
            ScoreSource.LATEST_AVAILABLE,
            window_start,
            window_end,
            scorer,
        )
        if summary is not None:
            return summary
    return None


async def _query_or_empty(
    provider: SampleProvider, start: datetime, end: datetime
) -> list[Sample]:
    try:
        return await provider.query_interval_samples(MetricId.SLEEP_ANALYSIS, start, end)
    except NoDataError:
        return []


async def build_sleep_summary(
    provider: SampleProvider,
    now: datetime,
    platform_version: int,
    primary_window_hours: int = PRIMARY_WINDOW_HOURS,
    fallback_lookback_days: int = FALLBACK_LOOKBACK_DAYS,
    fallback_gap_minutes: float = FALLBACK_NIGHT_GAP_MINUTES,
    scorer: SleepScorer = sleep_score,
) -> SleepSummary | None:
    """Build the sleep summary for `now`, falling back to the latest usable night."""
    window_start = now - timedelta(hours=primary_window_hours)
    samples = await _query_or_empty(provider, window_start, now)
    summary = summarize_segments(
        segments_from_samples(samples, platform_version),
        samples,
        ScoreSource.TODAY,
        window_start,
        now,
        scorer,
    )
    if summary is not None:
        return summary

    logger.info(
        "sleep_primary_window_empty",
        sample_count=len(samples),
        fallback_lookback_days=fallback_lookback_days,
    )
    history = await _query_or_empty(provider, now - timedelta(days=fallback_lookback_days), now)
    summary = latest_available_summary(
        segments_from_samples(history, platform_version),
        fallback_gap_minutes,
        scorer,
        samples=history,
    )
    if summary is None:
        logger.info("sleep_no_usable_night", sample_count=len(history))
    return summary


def _sample_to_bridge(sample: Sample, platform_version: int) -> dict[str, Any]:
    record = {
        "value": sample.value,
        "stage": classify_stage(sample.value, platform_version).value,
        "startDate": sample.start.isoformat(),
        "endDate": sample.end.isoformat(),
    }
    if sample.source_name:
        record["sourceName"] = sample.source_name
    return record


def sleep_section(
    summary: SleepSummary,
    platform_version: int,
    main_block_gap_minutes: float = MAIN_BLOCK_GAP_MINUTES,
) -> dict[str, Any]:
    """Bridge keys for the sleep section, including the main sleep block."""
    section: dict[str, Any] = {
        "inBedMinutesLast36h": round_value(summary.in_bed_minutes, 1),
        "asleepMinutesLast36h": round_value(summary.asleep_minutes, 1),
        "awakeMinutesLast36h": round_value(summary.awake_minutes, 1),
        "sampleCountLast36h": summary.sample_count,
        "sleepScore": summary.sleep_score,
        "scoreSource": summary.score_source.value,
        "stageMinutesLast36h": {
            f"{stage.value}Minutes": round_value(minutes, 1)
            for stage, minutes in summary.stage_minutes.items()
        },
        "samplesLast36h": [_sample_to_bridge(s, platform_version) for s in summary.samples],
    }

    blocks = build_sleep_blocks(
        segments_from_samples(summary.samples, platform_version), main_block_gap_minutes
    )
    main_block = choose_main_sleep_block(blocks)
    if main_block is not None:
        section["mainSleepStart"] = main_block.start.isoformat()
        section["mainSleepEnd"] = main_block.end.isoformat()
        section["mainSleepAsleepMinutes"] = round_value(main_block.asleep_minutes, 1)
    return section
