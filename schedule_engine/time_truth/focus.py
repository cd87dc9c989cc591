"""
Focus time analysis.

Work blocks count as focusable time; everything else (meetings, email,
breaks, blocked time, calendar events) interrupts focus. Uninterrupted
stretches inside the work day of at least `min_block_minutes` are focus
blocks.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from schedule_engine.models import BlockType, BusyItem, Level, TimeInterval, _Serializable
from schedule_engine.time_truth.gap_finder import complement
from schedule_engine.time_truth.interval_set import total_minutes
from schedule_engine.timeutil import round_half_up

logger = logging.getLogger(__name__)

IDEAL_BLOCK_MINUTES = 180


@dataclass
class FocusBlock(_Serializable):
    start: datetime
    end: datetime
    duration_minutes: int
    quality: Level


@dataclass
class FocusReport(_Serializable):
    date: str
    total_available_minutes: int
    longest_block_minutes: int
    fragmentation_index: float
    blocks: list[FocusBlock] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def high_quality_blocks(self) -> int:
        return sum(1 for b in self.blocks if b.quality == Level.HIGH)

    def summary(self) -> dict:
        return {
            "total_hours": round_half_up(self.total_available_minutes / 60 * 10) / 10,
            "block_count": len(self.blocks),
            "high_quality_blocks": self.high_quality_blocks,
            "fragmentation_percentage": round_half_up(self.fragmentation_index * 100),
        }


def focus_quality(duration_minutes: int) -> Level:
    if duration_minutes >= 120:
        return Level.HIGH
    if duration_minutes >= 90:
        return Level.MEDIUM
    return Level.LOW


def fragmentation_index(block_minutes: list[int]) -> float:
    """
    0 = ideal (free time in as few 3-hour blocks as possible), up to 1 = highly fragmented.
    """
    actual = len(block_minutes)
    if actual == 0:
        return 0.0
    ideal = math.ceil(sum(block_minutes) / IDEAL_BLOCK_MINUTES)
    return max(0.0, min(1.0, (actual - ideal) / actual))


def calculate_focus_time(
    day: str,
    work_window: TimeInterval,
    items: Iterable[BusyItem],
    min_block_minutes: int = 60,
) -> FocusReport:
    """
    Compute focus blocks and fragmentation for a day.

    Args:
        day: ISO date being analyzed
        work_window: The user's work day on that date
        items: All busy items for the date (blocks and events)
        min_block_minutes: Shortest stretch that counts as a focus block
    """
    interrupting = [item for item in items if item.kind != BlockType.WORK.value]

    stretches = [free for free in complement(work_window, interrupting) if free.duration_minutes >= min_block_minutes]
    blocks = [FocusBlock(s.start, s.end, s.duration_minutes, focus_quality(s.duration_minutes)) for s in stretches]

    durations = [b.duration_minutes for b in blocks]
    total = total_minutes(stretches)
    longest = max(durations, default=0)
    frag = fragmentation_index(durations)

    recommendations = []
    if frag > 0.5:
        recommendations.append("Consider consolidating meetings to create longer focus blocks")
    if longest < 120:
        recommendations.append("No blocks longer than 2 hours - protect morning time for deep work")
    if total < 240:
        recommendations.append("Less than 4 hours of focus time - review meeting necessity")
    if not any(b.quality == Level.HIGH for b in blocks):
        recommendations.append("No high-quality focus blocks - aim for at least one 2+ hour block")

    logger.debug("Focus time for %s: %d min in %d blocks", day, total, len(blocks))
    return FocusReport(
        date=day,
        total_available_minutes=total,
        longest_block_minutes=longest,
        fragmentation_index=frag,
        blocks=blocks,
        recommendations=recommendations,
    )
