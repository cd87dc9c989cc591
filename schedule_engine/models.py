"""
Data model for the scheduling engine.

Objects:
- TimeInterval (end > start, always)
- BusyItem (immutable snapshot of anything that occupies time)
- ScheduleBlock / CalendarEvent (owned by external collaborators, read here)
- Preferences (work day, lunch, configured breaks)
- Gap, Conflict, SlotCandidate, TaskMatch, DayLoad, BalanceSuggestion
  (derived, computed fresh per call)
- ProposedBlock / RejectedBlock / BatchResult (batch planning)

Only ScheduleBlock has a lifecycle, and the external schedule store owns it.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from schedule_engine.errors import InvalidInput
from schedule_engine.timeutil import combine, format_hhmm, minutes_between, parse_date

# =============================================================================
# ENUMS
# =============================================================================


class BusySource(StrEnum):
    SCHEDULE_BLOCK = "schedule_block"
    CALENDAR_EVENT = "calendar_event"
    PREFERENCE_BLOCK = "preference_block"


class BlockType(StrEnum):
    WORK = "work"
    MEETING = "meeting"
    EMAIL = "email"
    BREAK = "break"
    BLOCKED = "blocked"


class ConflictType(StrEnum):
    TIME_OVERLAP = "time_overlap"
    TRAVEL_TIME = "travel_time"
    RESOURCE = "resource"
    PREFERENCE = "preference"


class Level(StrEnum):
    """Shared high/medium/low scale (severity, quality, priority, energy, feasibility)."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DayPart(StrEnum):
    MORNING = "morning"
    MIDDAY = "midday"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class AttendeeStatus(StrEnum):
    """Tri-state for other attendees' availability. UNKNOWN is neutral, never 'available'."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class SuggestionKind(StrEnum):
    MOVE = "move"
    SPLIT = "split"


SEVERITY_RANK = {Level.HIGH: 0, Level.MEDIUM: 1, Level.LOW: 2}


# =============================================================================
# SERIALIZATION
# =============================================================================


def to_plain(value: Any) -> Any:
    """Convert dataclasses, enums, dates and containers into JSON-friendly values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, StrEnum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class _Serializable:
    def to_dict(self) -> dict:
        return to_plain(self)


# =============================================================================
# INTERVALS AND BUSY ITEMS
# =============================================================================


@dataclass(frozen=True, order=True)
class TimeInterval(_Serializable):
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidInput(
                f"Interval end must be after start: {self.start.isoformat()} - {self.end.isoformat()}"
            )

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start, self.end)

    def contains(self, instant: datetime) -> bool:
        """Boundary-inclusive membership."""
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class BusyItem(_Serializable):
    """
    Anything that occupies time on a day: a schedule block, a calendar event,
    or a protected preference window (lunch, configured breaks).
    """

    id: str
    title: str
    start: datetime
    end: datetime
    source: BusySource
    location: str | None = None
    recurring: bool = False
    kind: str | None = None
    fixed: bool = False

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidInput(f"Busy item {self.id!r} ends before it starts")

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.end)

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start, self.end)


# =============================================================================
# COLLABORATOR-OWNED ENTITIES
# =============================================================================


@dataclass
class ScheduleBlock(_Serializable):
    id: str
    type: BlockType
    title: str
    date: str
    start_time: str
    end_time: str
    description: str | None = None
    assigned_task_ids: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        self.type = BlockType(self.type)

    @property
    def start(self) -> datetime:
        return combine(self.date, self.start_time)

    @property
    def end(self) -> datetime:
        return combine(self.date, self.end_time)

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start, self.end)

    @property
    def is_well_formed(self) -> bool:
        """Parseable times with end after start. Overnight blocks (22:00-01:00) are not."""
        try:
            return self.end > self.start
        except InvalidInput:
            return False

    @property
    def is_fixed(self) -> bool:
        return bool(self.metadata.get("fixed", False))

    def to_busy_item(self) -> BusyItem:
        return BusyItem(
            id=self.id,
            title=self.title,
            start=self.start,
            end=self.end,
            source=BusySource.SCHEDULE_BLOCK,
            location=self.metadata.get("location"),
            recurring=bool(self.metadata.get("recurring", False)),
            kind=self.type.value,
            fixed=self.is_fixed,
        )


@dataclass
class CalendarEvent(_Serializable):
    id: str
    summary: str
    start: datetime | None
    end: datetime | None
    attendees: list[str] = field(default_factory=list)
    location: str | None = None
    recurring_event_id: str | None = None
    all_day: bool = False

    @property
    def is_timed(self) -> bool:
        """All-day events and events missing either bound do not occupy clock time."""
        return not self.all_day and self.start is not None and self.end is not None

    @property
    def duration_minutes(self) -> int:
        if not self.is_timed:
            return 0
        return minutes_between(self.start, self.end)

    def to_busy_item(self) -> BusyItem:
        return BusyItem(
            id=self.id,
            title=self.summary or "Untitled Event",
            start=self.start,
            end=self.end,
            source=BusySource.CALENDAR_EVENT,
            location=self.location or None,
            recurring=self.recurring_event_id is not None,
            kind=BlockType.MEETING.value,
        )


@dataclass
class BreakWindow(_Serializable):
    time: str
    duration_minutes: int = 15
    label: str = "Break"


@dataclass
class Preferences(_Serializable):
    work_start: str = "09:00"
    work_end: str = "17:00"
    lunch_start: str = "12:00"
    lunch_duration_minutes: int = 60
    break_schedule: list[BreakWindow] = field(default_factory=list)

    @property
    def target_minutes_per_day(self) -> int:
        """Work-hour span in whole hours, converted to minutes."""
        start_hour = int(self.work_start.split(":")[0])
        end_hour = int(self.work_end.split(":")[0])
        return (end_hour - start_hour) * 60

    def work_window(self, day) -> TimeInterval:
        return TimeInterval(combine(day, self.work_start), combine(day, self.work_end))

    def lunch_window(self, day) -> TimeInterval | None:
        if not self.lunch_start or self.lunch_duration_minutes <= 0:
            return None
        start = combine(day, self.lunch_start)
        return TimeInterval(start, start + timedelta(minutes=self.lunch_duration_minutes))

    def protected_windows(self, day) -> list[BusyItem]:
        """Lunch plus configured breaks for a date, as preference busy items."""
        day_str = parse_date(day).isoformat()
        windows = []
        lunch = self.lunch_window(day)
        if lunch:
            windows.append(
                BusyItem(
                    id=f"lunch-{day_str}",
                    title="Lunch",
                    start=lunch.start,
                    end=lunch.end,
                    source=BusySource.PREFERENCE_BLOCK,
                    kind=BlockType.BREAK.value,
                    fixed=True,
                )
            )
        for i, brk in enumerate(self.break_schedule):
            if brk.duration_minutes <= 0:
                continue
            start = combine(day, brk.time)
            windows.append(
                BusyItem(
                    id=f"break-{day_str}-{i}",
                    title=brk.label,
                    start=start,
                    end=start + timedelta(minutes=brk.duration_minutes),
                    source=BusySource.PREFERENCE_BLOCK,
                    kind=BlockType.BREAK.value,
                    fixed=True,
                )
            )
        return windows

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        breaks = [
            b if isinstance(b, BreakWindow) else BreakWindow(**b)
            for b in data.get("break_schedule", []) or []
        ]
        return cls(
            work_start=data.get("work_start", "09:00"),
            work_end=data.get("work_end", "17:00"),
            lunch_start=data.get("lunch_start", "12:00"),
            lunch_duration_minutes=int(data.get("lunch_duration_minutes", 60)),
            break_schedule=breaks,
        )


# =============================================================================
# DERIVED: GAPS AND CONFLICTS
# =============================================================================


@dataclass
class Gap(_Serializable):
    start: datetime
    end: datetime
    duration_minutes: int
    day_part: DayPart
    quality: Level
    suitable_for: list[str]


@dataclass
class Conflict(_Serializable):
    type: ConflictType
    severity: Level
    items: tuple[BusyItem, ...]
    description: str
    suggestions: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, tuple[str, ...]]:
        return (self.type.value, tuple(sorted(item.id for item in self.items)))

    @property
    def earliest_start(self) -> datetime:
        return min(item.start for item in self.items)


# =============================================================================
# DERIVED: SLOT CANDIDATES
# =============================================================================


@dataclass
class SlotFactors(_Serializable):
    all_available: bool = False
    preferred_time: bool = False
    minimizes_disruption: bool = False
    energy_alignment: bool = False
    travel_time: bool = False
    attendee_availability: AttendeeStatus = AttendeeStatus.UNKNOWN
    conflict_count: int = 0


@dataclass
class SlotCandidate(_Serializable):
    date: str
    start: datetime
    end: datetime
    score: float
    factors: SlotFactors
    breakdown: dict[str, float] = field(default_factory=dict)

    @property
    def start_time(self) -> str:
        return format_hhmm(self.start)

    @property
    def end_time(self) -> str:
        return format_hhmm(self.end)


@dataclass
class TaskCandidate(_Serializable):
    id: str
    title: str
    description: str = ""
    estimated_minutes: int = 30
    priority: Level | None = None

    def __post_init__(self):
        if self.priority is not None:
            self.priority = Level(self.priority)


@dataclass
class TaskMatch(_Serializable):
    task: TaskCandidate
    slot_start: datetime
    slot_end: datetime
    score: float
    breakdown: dict[str, float]
    reasons: list[str]


# =============================================================================
# DERIVED: WORKLOAD
# =============================================================================


@dataclass
class DayLoad(_Serializable):
    date: str
    total_minutes: int
    work_minutes: int
    meeting_minutes: int
    break_minutes: int
    load_score: int
    item_count: int = 0


@dataclass
class BalanceItem(_Serializable):
    id: str
    title: str
    duration_minutes: int
    type: str


@dataclass
class BalanceSuggestion(_Serializable):
    kind: SuggestionKind
    from_date: str
    to_date: str
    item: BalanceItem
    impact: str
    feasibility: Level


# =============================================================================
# BATCH PLANNING
# =============================================================================


@dataclass
class ProposedBlock(_Serializable):
    type: BlockType
    title: str
    start_time: str
    end_time: str
    description: str | None = None

    def __post_init__(self):
        try:
            self.type = BlockType(self.type)
        except ValueError:
            raise InvalidInput(f"Unknown block type: {self.type!r}") from None

    @classmethod
    def from_dict(cls, data: Mapping) -> "ProposedBlock":
        """Build a proposed block from a raw mapping, e.g. a tool call payload."""
        missing = [key for key in ("type", "title", "start_time", "end_time") if key not in data]
        if missing:
            raise InvalidInput(f"Proposed block is missing: {', '.join(missing)}")
        return cls(
            type=data["type"],
            title=data["title"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            description=data.get("description"),
        )


@dataclass
class RejectedBlock(_Serializable):
    block: ProposedBlock | dict
    reason: str
    conflicts_with: str | None = None
    conflicts_with_id: str | None = None


@dataclass
class BatchResult(_Serializable):
    date: str
    created: list[ScheduleBlock] = field(default_factory=list)
    conflicts: list[RejectedBlock] = field(default_factory=list)
    total_requested: int = 0
    committed: bool = True

    @property
    def total_created(self) -> int:
        return len(self.created)

    def to_dict(self) -> dict:
        data = to_plain(self)
        data["total_created"] = self.total_created
        return data
