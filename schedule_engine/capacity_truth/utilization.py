"""
Utilization Analysis - How a single day's schedule is spent.

Tracks:
- Minutes by block type (work = focus, meeting, break, email)
- Fragmented time: gaps shorter than 30 minutes inside the work day
- Utilization against a fixed 8-hour reference day
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from schedule_engine.models import BlockType, ScheduleBlock, TimeInterval, _Serializable
from schedule_engine.timeutil import minutes_between, round_half_up

logger = logging.getLogger(__name__)

FRAGMENT_THRESHOLD_MINUTES = 30
REFERENCE_DAY_MINUTES = 8 * 60


@dataclass
class UtilizationReport(_Serializable):
    date: str
    utilization: int
    total_scheduled_minutes: int
    focus_minutes: int
    meeting_minutes: int
    break_minutes: int
    email_minutes: int
    fragmented_minutes: int
    longest_work_block_minutes: int
    block_count: int
    minutes_by_type: dict[str, int] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)


def fragmented_minutes(blocks: list[ScheduleBlock], work_window: TimeInterval) -> int:
    """Sum of gaps with 0 < gap < 30 minutes: before the first block, between blocks, after the last."""
    if not blocks:
        return 0
    ordered = sorted(blocks, key=lambda b: (b.start, b.end))

    gaps = [minutes_between(work_window.start, ordered[0].start)]
    gaps.extend(minutes_between(a.end, b.start) for a, b in zip(ordered, ordered[1:]))
    gaps.append(minutes_between(ordered[-1].end, work_window.end))

    return sum(g for g in gaps if 0 < g < FRAGMENT_THRESHOLD_MINUTES)


def analyze_utilization(
    day: str,
    blocks: Iterable[ScheduleBlock],
    work_window: TimeInterval,
    reference_day_minutes: int = REFERENCE_DAY_MINUTES,
) -> UtilizationReport:
    """
    Analyze schedule efficiency for a day's blocks.

    Args:
        day: ISO date
        blocks: Schedule blocks for the date
        work_window: Work day used for leading/trailing fragment detection
        reference_day_minutes: Denominator for the utilization percentage
    """
    blocks = list(blocks)

    by_type: dict[str, int] = defaultdict(int)
    for block in blocks:
        by_type[block.type.value] += block.duration_minutes
    total = sum(by_type.values())

    focus = by_type.get(BlockType.WORK.value, 0)
    meeting = by_type.get(BlockType.MEETING.value, 0)
    breaks = by_type.get(BlockType.BREAK.value, 0)
    email = by_type.get(BlockType.EMAIL.value, 0)
    fragmented = fragmented_minutes(blocks, work_window)
    utilization = round_half_up(total / reference_day_minutes * 100)
    longest = max(
        (b.duration_minutes for b in blocks if b.type == BlockType.WORK),
        default=0,
    )

    suggestions = []
    if utilization < 70:
        suggestions.append("Schedule is underutilized - consider adding more focused work blocks")
    elif utilization > 90:
        suggestions.append("Schedule is very full - ensure you have buffer time for unexpected tasks")
    if focus < 180:
        suggestions.append("Limited deep work time - try to schedule longer uninterrupted work blocks")
    if breaks < 30:
        suggestions.append("Insufficient break time - add short breaks to maintain energy")
    if fragmented > 60:
        suggestions.append(
            f"{round_half_up(fragmented / 60)} hours of fragmented time - consolidate small gaps"
        )
    if meeting > focus:
        suggestions.append("Meetings dominate your schedule - protect time for focused work")
    if email == 0:
        suggestions.append("No dedicated email time - schedule blocks to avoid constant interruptions")

    logger.debug("Utilization %s: %d%%, %d suggestions", day, utilization, len(suggestions))
    return UtilizationReport(
        date=day,
        utilization=utilization,
        total_scheduled_minutes=total,
        focus_minutes=focus,
        meeting_minutes=meeting,
        break_minutes=breaks,
        email_minutes=email,
        fragmented_minutes=fragmented,
        longest_work_block_minutes=longest,
        block_count=len(blocks),
        minutes_by_type=dict(by_type),
        suggestions=suggestions,
    )
