"""
Break protection analysis.

Read-only: reports missing lunch, long stretches of back-to-back work, and
proposes break blocks. Creating the proposed blocks is left to the caller
(e.g. via the batch planner).
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from schedule_engine.models import (
    BlockType,
    BusyItem,
    Level,
    Preferences,
    ScheduleBlock,
    _Serializable,
)
from schedule_engine.time_truth.interval_set import boundary_overlap
from schedule_engine.timeutil import add_minutes, format_hhmm, minutes_between, round_half_up

logger = logging.getLogger(__name__)

# Items separated by at most this many minutes form one continuous stretch
CONTINUITY_GAP_MINUTES = 15
MAX_STRETCH_MINUTES = 180
BREAK_OFFSET_MINUTES = 120
SHORT_BREAK_MINUTES = 15
# One break expected per 3 hours of an 8-hour day, on top of scheduled ones
EXTRA_EXPECTED_BREAKS = 8 // 3


@dataclass
class ExpectedBreak(_Serializable):
    label: str
    time: str
    duration_minutes: int


@dataclass
class BreakViolation(_Serializable):
    expected_time: str
    severity: Level
    kind: str = "missing"
    conflicting_item: BusyItem | None = None


@dataclass
class BreakAction(_Serializable):
    description: str
    target_time: str
    duration_minutes: int
    impact: str


@dataclass
class BreakReport(_Serializable):
    date: str
    expected_breaks: list[ExpectedBreak] = field(default_factory=list)
    actual_breaks: list[ScheduleBlock] = field(default_factory=list)
    violations: list[BreakViolation] = field(default_factory=list)
    actions: list[BreakAction] = field(default_factory=list)
    protection_score: int = 0


def _has_lunch_block(blocks: list[ScheduleBlock]) -> bool:
    return any(b.type == BlockType.BREAK and "lunch" in b.title.lower() for b in blocks)


def _stretches(items: list[BusyItem]) -> list[tuple[BusyItem, int]]:
    """Group start-sorted items into continuous stretches; return (first item, stretch minutes)."""
    stretches = []
    i = 0
    while i < len(items):
        first = items[i]
        stretch_end = first.end
        j = i + 1
        while j < len(items) and minutes_between(stretch_end, items[j].start) <= CONTINUITY_GAP_MINUTES:
            stretch_end = max(stretch_end, items[j].end)
            j += 1
        stretches.append((first, minutes_between(first.start, stretch_end)))
        i = j
    return stretches


def analyze_breaks(
    day: str,
    blocks: list[ScheduleBlock],
    events: Iterable[BusyItem],
    preferences: Preferences,
) -> BreakReport:
    """
    Analyze break coverage for a day.

    Args:
        day: ISO date
        blocks: Schedule blocks for the date
        events: Timed calendar events for the date, as busy items
        preferences: Lunch and configured break schedule

    Returns:
        BreakReport with violations and up to three proposed actions
    """
    events = list(events)
    report = BreakReport(date=day)

    lunch = preferences.lunch_window(day)
    if lunch:
        report.expected_breaks.append(
            ExpectedBreak("lunch", format_hhmm(lunch.start), lunch.duration_minutes)
        )
        if not _has_lunch_block(blocks):
            occupying = [
                item
                for item in [b.to_busy_item() for b in blocks] + events
                if boundary_overlap(item, lunch)
            ]
            report.violations.append(
                BreakViolation(
                    expected_time=format_hhmm(lunch.start),
                    severity=Level.HIGH,
                    conflicting_item=occupying[0] if occupying else None,
                )
            )
            report.actions.append(
                BreakAction(
                    description="Schedule lunch break",
                    target_time=format_hhmm(lunch.start),
                    duration_minutes=lunch.duration_minutes,
                    impact="Ensures proper nutrition and energy recovery",
                )
            )

    for brk in preferences.break_schedule:
        report.expected_breaks.append(ExpectedBreak(brk.label, brk.time, brk.duration_minutes))

    busy = sorted([b.to_busy_item() for b in blocks] + events, key=lambda i: (i.start, i.end))
    for first, duration in _stretches(busy):
        if duration <= MAX_STRETCH_MINUTES:
            continue
        target = format_hhmm(add_minutes(first.start, BREAK_OFFSET_MINUTES))
        report.violations.append(BreakViolation(expected_time=target, severity=Level.MEDIUM))
        report.actions.append(
            BreakAction(
                description=f"Add break after {round_half_up(duration / 60)} hours of continuous work",
                target_time=target,
                duration_minutes=SHORT_BREAK_MINUTES,
                impact="Prevents burnout and maintains productivity",
            )
        )

    report.actual_breaks = [b for b in blocks if b.type == BlockType.BREAK]
    expected_total = len(report.expected_breaks) + EXTRA_EXPECTED_BREAKS
    report.protection_score = round_half_up(len(report.actual_breaks) / expected_total * 100)
    report.actions = report.actions[:3]

    logger.debug(
        "Break analysis %s: score %d, %d violations",
        day,
        report.protection_score,
        len(report.violations),
    )
    return report
