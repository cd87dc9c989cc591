"""
Interval Set - Normalize and merge a day's busy intervals.

The shared substrate for gap finding, focus time and availability checks.

Invariants:
- merge() output is sorted by start and non-overlapping
- Touching intervals (next.start == last.end) are coalesced
- merge() is idempotent and independent of input order
"""

from collections.abc import Iterable
from datetime import datetime

from schedule_engine.models import BusyItem, TimeInterval


def _as_interval(item: BusyItem | TimeInterval) -> TimeInterval:
    if isinstance(item, TimeInterval):
        return item
    return TimeInterval(item.start, item.end)


def merge(items: Iterable[BusyItem | TimeInterval]) -> list[TimeInterval]:
    """
    Merge busy items into sorted, non-overlapping intervals.

    Args:
        items: BusyItems or TimeIntervals, any order

    Returns:
        Sorted list of TimeIntervals with overlapping/touching ones coalesced
    """
    intervals = sorted((_as_interval(i) for i in items), key=lambda iv: (iv.start, iv.end))

    merged: list[TimeInterval] = []
    for interval in intervals:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = TimeInterval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def clip(intervals: Iterable[TimeInterval], window: TimeInterval) -> list[TimeInterval]:
    """Restrict intervals to a window, dropping the ones entirely outside it."""
    clipped = []
    for interval in intervals:
        start = max(interval.start, window.start)
        end = min(interval.end, window.end)
        if end > start:
            clipped.append(TimeInterval(start, end))
    return clipped


def total_minutes(intervals: Iterable[TimeInterval]) -> int:
    """Summed duration. Callers merge first when the intervals may overlap."""
    return sum(i.duration_minutes for i in intervals)


def overlaps(a: BusyItem | TimeInterval, b: BusyItem | TimeInterval, inclusive: bool = False) -> bool:
    """
    Interval overlap test.

    inclusive=False: strict overlap, touching intervals do not overlap.
    inclusive=True: boundary-inclusive, any shared instant counts.
    """
    if inclusive:
        return a.start <= b.end and b.start <= a.end
    return a.start < b.end and b.start < a.end


def boundary_overlap(a: BusyItem | TimeInterval, b: BusyItem | TimeInterval) -> bool:
    """
    Four-way boundary-inclusive check used for conflict reporting:
    either endpoint of one interval lies within the other.
    """

    def within(instant: datetime, iv) -> bool:
        return iv.start <= instant <= iv.end

    return within(a.start, b) or within(a.end, b) or within(b.start, a) or within(b.end, a)
