"""Interval clustering: group interval segments into contiguous blocks.

Segments are sorted by (start, end) and merged while the gap between a
segment's start and the previous segment's end stays within tolerance.

Two tolerances are in use:
- MAIN_BLOCK_GAP_MINUTES (45): main-sleep-block detection inside the
  primary window, where a wake-up of more than 45 minutes splits a night
  from a nap.
- FALLBACK_NIGHT_GAP_MINUTES (120): coarse night segmentation over a
  year of history for the latest-available sleep lookup.
"""

from collections.abc import Iterable
from datetime import timedelta

from health.domain.models import IntervalSegment, SleepBlock

MAIN_BLOCK_GAP_MINUTES = 45.0
FALLBACK_NIGHT_GAP_MINUTES = 120.0

# A main block needs at least this much sleep to beat the most recent block
MAIN_BLOCK_MIN_ASLEEP_MINUTES = 90.0


def cluster_segments(
    segments: Iterable[IntervalSegment], max_gap_minutes: float
) -> list[list[IntervalSegment]]:
    """Partition segments into chronological clusters.

    Every input segment lands in exactly one cluster. Within a cluster each
    gap is <= max_gap_minutes; between clusters the gap is larger.
    """
    max_gap = timedelta(minutes=max_gap_minutes)
    ordered = sorted(segments, key=lambda s: (s.start, s.end))

    clusters: list[list[IntervalSegment]] = []
    current: list[IntervalSegment] = []
    for segment in ordered:
        if not current:
            current = [segment]
            continue
        if segment.start - current[-1].end <= max_gap:
            current.append(segment)
        else:
            clusters.append(current)
            current = [segment]

    if current:
        clusters.append(current)
    return clusters


def build_sleep_blocks(
    segments: Iterable[IntervalSegment], max_gap_minutes: float = MAIN_BLOCK_GAP_MINUTES
) -> list[SleepBlock]:
    return [SleepBlock.from_segments(c) for c in cluster_segments(segments, max_gap_minutes)]


def choose_main_sleep_block(blocks: list[SleepBlock]) -> SleepBlock | None:
    """Pick the block that represents "last night".

    The block with the most sleep wins (latest end breaks ties) as long as
    it holds at least MAIN_BLOCK_MIN_ASLEEP_MINUTES; otherwise the most
    recent block is used.
    """
    if not blocks:
        return None

    ranked = sorted(blocks, key=lambda b: (b.asleep_minutes, b.end), reverse=True)
    if ranked[0].asleep_minutes >= MAIN_BLOCK_MIN_ASLEEP_MINUTES:
        return ranked[0]
    return blocks[-1]
