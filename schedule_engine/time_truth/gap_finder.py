"""
Gap Finder - Free time within the work day.

Complements the merged busy intervals against [work_start, work_end]:
leading gap, inter-item gaps, trailing gap. Gaps shorter than the minimum
are dropped. Each gap is classified by the hour it starts in.

Invariant: for any day, complement(window, busy) together with the busy
intervals clipped to the window reconstructs the window exactly, with no
holes and no overlaps.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from schedule_engine.models import BusyItem, DayPart, Gap, Level, TimeInterval
from schedule_engine.time_truth.interval_set import clip, merge
from schedule_engine.timeutil import minutes_between, round_half_up

logger = logging.getLogger(__name__)

REFERENCE_DAY_MINUTES = 8 * 60

SUITABILITY = {
    (DayPart.MORNING, Level.HIGH): ["deep work", "creative tasks", "planning"],
    (DayPart.MORNING, Level.MEDIUM): ["emails", "quick tasks", "reviews"],
    (DayPart.MIDDAY, Level.LOW): ["administrative tasks", "emails", "light reading"],
    (DayPart.AFTERNOON, Level.MEDIUM): ["meetings", "collaborative work", "problem solving"],
    (DayPart.AFTERNOON, Level.LOW): ["quick calls", "status updates", "planning"],
    (DayPart.EVENING, Level.LOW): ["wrap-up tasks", "planning tomorrow", "learning"],
}


def classify_gap(start: datetime, duration_minutes: int) -> tuple[DayPart, Level, list[str]]:
    """
    Classify a gap by its start hour.

    Bands: <12 morning, 12-14 midday (post-lunch dip, always low),
    14-17 afternoon, >=17 evening.
    """
    hour = start.hour
    if hour < 12:
        part = DayPart.MORNING
        quality = Level.HIGH if duration_minutes >= 90 else Level.MEDIUM
    elif hour < 14:
        part = DayPart.MIDDAY
        quality = Level.LOW
    elif hour < 17:
        part = DayPart.AFTERNOON
        quality = Level.MEDIUM if duration_minutes >= 60 else Level.LOW
    else:
        part = DayPart.EVENING
        quality = Level.LOW
    return part, quality, list(SUITABILITY[(part, quality)])


def complement(
    window: TimeInterval, busy: Iterable[BusyItem | TimeInterval]
) -> list[TimeInterval]:
    """All free intervals inside the window, with no minimum length."""
    merged = clip(merge(busy), window)

    free: list[TimeInterval] = []
    cursor = window.start
    for interval in merged:
        if interval.start > cursor:
            free.append(TimeInterval(cursor, interval.start))
        cursor = max(cursor, interval.end)
    if cursor < window.end:
        free.append(TimeInterval(cursor, window.end))
    return free


def find_gaps(
    work_start: datetime,
    work_end: datetime,
    busy: Iterable[BusyItem | TimeInterval],
    min_gap_minutes: int = 30,
) -> list[Gap]:
    """
    Find classified free gaps in a work day.

    Args:
        work_start: Start of the work day (datetime on the target date)
        work_end: End of the work day
        busy: Busy items or intervals for the date, any order, may overlap
        min_gap_minutes: Gaps shorter than this are dropped

    Returns:
        Gaps in chronological order
    """
    window = TimeInterval(work_start, work_end)

    gaps = []
    for free in complement(window, busy):
        duration = minutes_between(free.start, free.end)
        if duration < min_gap_minutes:
            continue
        part, quality, suitable = classify_gap(free.start, duration)
        gaps.append(
            Gap(
                start=free.start,
                end=free.end,
                duration_minutes=duration,
                day_part=part,
                quality=quality,
                suitable_for=suitable,
            )
        )

    logger.debug("Found %d gaps >= %d min in %s", len(gaps), min_gap_minutes, window)
    return gaps


def gap_statistics(gaps: list[Gap], reference_day_minutes: int = REFERENCE_DAY_MINUTES) -> dict:
    """
    Aggregate stats over a day's gaps.

    utilization_percentage is measured against a fixed reference day
    (8 hours by default), not the configured work window, and can go
    negative when gaps exceed the reference.
    """
    total = sum(g.duration_minutes for g in gaps)
    largest = max((g.duration_minutes for g in gaps), default=0)
    average = round_half_up(total / len(gaps)) if gaps else 0

    return {
        "total_gaps": len(gaps),
        "total_gap_minutes": total,
        "total_gap_hours": round_half_up(total / 60 * 10) / 10,
        "largest_gap_minutes": largest,
        "average_gap_minutes": average,
        "utilization_percentage": round_half_up((1 - total / reference_day_minutes) * 100),
    }
