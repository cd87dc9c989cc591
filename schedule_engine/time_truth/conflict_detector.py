"""
Conflict Detector - Pairwise analysis of a day's busy items.

Detects:
- time_overlap (high): two items share any instant (boundary inclusive)
- buffer violations (reported as time_overlap, medium): 0 <= gap < buffer,
  checked A->B and B->A independently
- travel_time (high): adjacent located items at different places with
  0 <= gap < travel buffer
- preference (medium): an item overlapping a protected window (lunch, breaks)

Conflicts are deduplicated by (type, sorted item ids); the first occurrence
wins. The detector is pure: it never mutates or reorders caller data.
"""

import logging
from collections.abc import Iterable, Sequence

from schedule_engine.models import SEVERITY_RANK, BusyItem, Conflict, ConflictType, Level
from schedule_engine.time_truth.interval_set import boundary_overlap
from schedule_engine.timeutil import format_hhmm

logger = logging.getLogger(__name__)


def _gap_minutes(earlier: BusyItem, later: BusyItem) -> float:
    """Minutes from the end of `earlier` to the start of `later` (negative if they overlap)."""
    return (later.start - earlier.end).total_seconds() / 60


def _fmt_minutes(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


class ConflictDetector:
    """
    Detects scheduling conflicts among busy items.

    Args:
        buffer_minutes: Minimum gap wanted between consecutive items (0 disables)
        travel_buffer_minutes: Travel time assumed between different locations
        check_travel_time: Whether to run the travel check at all
    """

    def __init__(
        self,
        buffer_minutes: int = 15,
        travel_buffer_minutes: int = 30,
        check_travel_time: bool = True,
    ):
        self.buffer_minutes = buffer_minutes
        self.travel_buffer_minutes = travel_buffer_minutes
        self.check_travel_time = check_travel_time

    @classmethod
    def from_config(cls, config) -> "ConflictDetector":
        return cls(
            buffer_minutes=config.conflicts.buffer_minutes,
            travel_buffer_minutes=config.conflicts.travel_buffer_minutes,
            check_travel_time=config.conflicts.check_travel_time,
        )

    def detect(
        self,
        items: Sequence[BusyItem],
        protected_windows: Iterable[BusyItem] = (),
    ) -> list[Conflict]:
        """
        Detect all conflicts for a day.

        Args:
            items: The day's busy items (blocks + events)
            protected_windows: Preference windows (lunch, breaks) items must not overlap

        Returns:
            Deduplicated conflicts, high severity first, then by earliest item start
        """
        # Canonical order so the result does not depend on caller ordering.
        ordered = sorted(items, key=lambda i: (i.start, i.end, i.id))

        conflicts: list[Conflict] = []
        conflicts.extend(self._overlap_conflicts(ordered))
        if self.buffer_minutes > 0:
            conflicts.extend(self._buffer_conflicts(ordered))
        if self.check_travel_time:
            conflicts.extend(self._travel_conflicts(ordered))
        conflicts.extend(self._preference_conflicts(ordered, list(protected_windows)))

        unique = self._dedupe(conflicts)
        unique.sort(key=lambda c: (SEVERITY_RANK[c.severity], c.earliest_start, c.key))

        logger.debug(
            "Detected %d conflicts (%d before dedup) across %d items",
            len(unique),
            len(conflicts),
            len(ordered),
        )
        return unique

    # -------------------------------------------------------------------------
    # Individual checks
    # -------------------------------------------------------------------------

    def _overlap_conflicts(self, items: list[BusyItem]) -> list[Conflict]:
        conflicts = []
        for i, a in enumerate(items):
            for b in items[i + 1 :]:
                if not boundary_overlap(a, b):
                    continue
                conflicts.append(
                    Conflict(
                        type=ConflictType.TIME_OVERLAP,
                        severity=Level.HIGH,
                        items=(a, b),
                        description=f'"{a.title}" overlaps with "{b.title}"',
                        suggestions=[
                            f"Reschedule {a.title} to an earlier time",
                            f"Shorten {a.title} to end before {format_hhmm(b.start)}",
                            f"Move {b.title} to after {format_hhmm(a.end)}",
                        ],
                    )
                )
        return conflicts

    def _buffer_conflicts(self, items: list[BusyItem]) -> list[Conflict]:
        conflicts = []
        for i, a in enumerate(items):
            for b in items[i + 1 :]:
                for first, second in ((a, b), (b, a)):
                    gap = _gap_minutes(first, second)
                    if 0 <= gap < self.buffer_minutes:
                        conflicts.append(self._buffer_conflict(first, second, gap))
        return conflicts

    def _buffer_conflict(self, first: BusyItem, second: BusyItem, gap: float) -> Conflict:
        shortfall = self.buffer_minutes - gap
        return Conflict(
            type=ConflictType.TIME_OVERLAP,
            severity=Level.MEDIUM,
            items=(first, second),
            description=f'Only {round(gap)} minutes between "{first.title}" and "{second.title}"',
            suggestions=[
                f"Add {self.buffer_minutes} minute buffer between events",
                f"End {first.title} {_fmt_minutes(shortfall)} minutes earlier",
            ],
        )

    def _travel_conflicts(self, items: list[BusyItem]) -> list[Conflict]:
        located = [item for item in items if item.location]
        conflicts = []
        for first, second in zip(located, located[1:]):
            if first.location == second.location:
                continue
            gap = _gap_minutes(first, second)
            if 0 <= gap < self.travel_buffer_minutes:
                conflicts.append(
                    Conflict(
                        type=ConflictType.TRAVEL_TIME,
                        severity=Level.HIGH,
                        items=(first, second),
                        description=(
                            f'Not enough travel time between "{first.title}" at {first.location} '
                            f'and "{second.title}" at {second.location}'
                        ),
                        suggestions=[
                            f"Allow at least {self.travel_buffer_minutes} minutes for travel",
                            f"Change {second.title} to virtual/remote",
                            f"Move {second.title} to the same location",
                        ],
                    )
                )
        return conflicts

    def _preference_conflicts(
        self, items: list[BusyItem], protected: list[BusyItem]
    ) -> list[Conflict]:
        conflicts = []
        protected_ids = {w.id for w in protected}
        for window in protected:
            label = window.title.lower()
            for item in items:
                if item.id in protected_ids:
                    continue
                # A break block scheduled inside its own window is not a breach.
                if item.kind == "break" and window.start <= item.start and item.end <= window.end:
                    continue
                if not boundary_overlap(item, window):
                    continue
                conflicts.append(
                    Conflict(
                        type=ConflictType.PREFERENCE,
                        severity=Level.MEDIUM,
                        items=(item, window),
                        description=f'"{item.title}" conflicts with {label} time',
                        suggestions=[
                            f"Move {item.title} to after {label}",
                            f"Schedule {item.title} before {label}",
                            f"Shorten {label} for this day",
                        ],
                    )
                )
        return conflicts

    @staticmethod
    def _dedupe(conflicts: list[Conflict]) -> list[Conflict]:
        seen = set()
        unique = []
        for conflict in conflicts:
            if conflict.key in seen:
                continue
            seen.add(conflict.key)
            unique.append(conflict)
        return unique


def summarize(conflicts: Iterable[Conflict]) -> dict:
    """Count conflicts by severity."""
    conflicts = list(conflicts)
    return {
        "total": len(conflicts),
        "high": sum(1 for c in conflicts if c.severity == Level.HIGH),
        "medium": sum(1 for c in conflicts if c.severity == Level.MEDIUM),
        "low": sum(1 for c in conflicts if c.severity == Level.LOW),
    }
