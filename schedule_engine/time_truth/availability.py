"""
Slot availability check.

Answers "is HH:MM-HH:MM on this date free?" against the day's busy items,
the lunch window, and the work-day bounds.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from schedule_engine.models import BusyItem, BusySource, Preferences, TimeInterval, _Serializable
from schedule_engine.time_truth.interval_set import overlaps
from schedule_engine.timeutil import add_minutes, combine

logger = logging.getLogger(__name__)


@dataclass
class SlotAvailability(_Serializable):
    date: str
    start_time: str
    end_time: str
    is_available: bool
    outside_work_hours: bool
    conflicts: list[BusyItem] = field(default_factory=list)

    def summary(self) -> dict:
        return {
            "available": self.is_available,
            "conflict_count": len(self.conflicts),
            "calendar_conflicts": sum(
                1 for c in self.conflicts if c.source == BusySource.CALENDAR_EVENT
            ),
            "schedule_conflicts": sum(
                1 for c in self.conflicts if c.source != BusySource.CALENDAR_EVENT
            ),
        }


def check_slot_availability(
    day: str,
    start_time: str,
    end_time: str,
    items: Iterable[BusyItem],
    preferences: Preferences,
    buffer_minutes: int = 0,
) -> SlotAvailability:
    """
    Check a requested slot against busy items and preferences.

    The buffer widens the window checked against busy items on both sides.
    Lunch counts as a conflict when the requested slot overlaps it (the
    buffer does not apply to lunch). Being outside work hours is reported
    but does not by itself make the slot unavailable.

    Raises:
        InvalidInput: If the times are malformed or end <= start
    """
    requested = TimeInterval(combine(day, start_time), combine(day, end_time))
    checked = TimeInterval(
        add_minutes(requested.start, -buffer_minutes),
        add_minutes(requested.end, buffer_minutes),
    )

    conflicts = [item for item in items if overlaps(item, checked)]

    lunch_item = next(
        (w for w in preferences.protected_windows(day) if w.id.startswith("lunch-")), None
    )
    if lunch_item and overlaps(lunch_item, requested):
        conflicts.append(lunch_item)

    work = preferences.work_window(day)
    outside = requested.start < work.start or requested.end > work.end

    logger.debug(
        "Availability %s %s-%s: %d conflicts (buffer %d)",
        day,
        start_time,
        end_time,
        len(conflicts),
        buffer_minutes,
    )
    return SlotAvailability(
        date=day,
        start_time=start_time,
        end_time=end_time,
        is_available=not conflicts,
        outside_work_hours=outside,
        conflicts=conflicts,
    )
