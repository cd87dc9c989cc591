"""
External collaborator contracts.

The engine never owns persistence. Schedule blocks, calendar events and
preferences are read (and, for blocks, written) through these protocols,
passed in explicitly by the caller.

In-memory implementations are provided for tests and local wiring.
"""

import logging
import threading
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import fields, replace
from datetime import datetime
from typing import Protocol

from schedule_engine.errors import InvalidInput, NotFound, StoreConflictError
from schedule_engine.models import (
    CalendarEvent,
    Preferences,
    ProposedBlock,
    ScheduleBlock,
    TimeInterval,
)
from schedule_engine.timeutil import parse_date

logger = logging.getLogger(__name__)


# =============================================================================
# PROTOCOLS
# =============================================================================


class ScheduleStore(Protocol):
    """Protocol for the persisted schedule (owner of ScheduleBlock lifecycle)."""

    def get_blocks_for_date(self, date: str) -> list[ScheduleBlock]:
        """All blocks on a date, any order."""
        ...

    def get_block(self, block_id: str) -> ScheduleBlock | None:
        ...

    def create_block(self, date: str, block: ProposedBlock) -> ScheduleBlock:
        """Persist a block. May raise StoreConflictError on a lost concurrent write."""
        ...

    def update_block(self, block_id: str, patch: Mapping) -> ScheduleBlock:
        ...

    def delete_block(self, block_id: str) -> None:
        ...


class CalendarProvider(Protocol):
    """Protocol for the external calendar (read-mostly)."""

    def list_events(
        self, time_min: datetime, time_max: datetime, calendar_id: str = "primary"
    ) -> list[CalendarEvent]:
        """Events overlapping [time_min, time_max]."""
        ...

    def get_event(self, event_id: str) -> CalendarEvent | None:
        ...

    def create_event(self, event: CalendarEvent) -> CalendarEvent:
        ...

    def update_event(self, event_id: str, patch: Mapping) -> CalendarEvent:
        ...

    def check_conflicts(
        self, start: datetime, end: datetime, exclude_id: str | None = None
    ) -> list[CalendarEvent]:
        ...


class PreferenceStore(Protocol):
    """Protocol for per-user time preferences."""

    def get(self, user_id: str) -> Preferences:
        ...


class AttendeeAvailability(Protocol):
    """Protocol for other attendees' free/busy."""

    def is_available(self, attendee: str, start: datetime, end: datetime) -> bool | None:
        """
        True/False when known. None, or UnresolvedDependency raised, when the
        attendee's calendar cannot be read; either way the attendee counts as unknown.
        """
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================


_PATCHABLE_BLOCK_FIELDS = {f.name for f in fields(ScheduleBlock)} - {"id"}


class InMemoryScheduleStore:
    """
    Thread-safe dict-backed schedule store.

    Args:
        blocks: Initial blocks
        reject_overlaps: When True, create_block refuses a block that overlaps
            an existing one on the same date (raising StoreConflictError), the
            way a conditional write would
    """

    def __init__(self, blocks: Iterable[ScheduleBlock] = (), reject_overlaps: bool = False):
        self._blocks: dict[str, ScheduleBlock] = {b.id: b for b in blocks}
        self._lock = threading.Lock()
        self.reject_overlaps = reject_overlaps

    def get_blocks_for_date(self, date: str) -> list[ScheduleBlock]:
        day = parse_date(date).isoformat()
        with self._lock:
            blocks = [b for b in self._blocks.values() if b.date == day]
        return sorted(blocks, key=lambda b: (b.start_time, b.end_time, b.id))

    def get_block(self, block_id: str) -> ScheduleBlock | None:
        with self._lock:
            return self._blocks.get(block_id)

    def create_block(self, date: str, block: ProposedBlock) -> ScheduleBlock:
        created = ScheduleBlock(
            id=f"block_{uuid.uuid4().hex[:12]}",
            type=block.type,
            title=block.title,
            date=parse_date(date).isoformat(),
            start_time=block.start_time,
            end_time=block.end_time,
            description=block.description,
        )
        if created.end <= created.start:
            raise InvalidInput("End time must be after start time")

        with self._lock:
            if self.reject_overlaps:
                for existing in self._blocks.values():
                    if (
                        existing.date == created.date
                        and created.start < existing.end
                        and existing.start < created.end
                    ):
                        raise StoreConflictError(f"overlaps block {existing.id}")
            self._blocks[created.id] = created

        logger.debug("Created block %s on %s %s-%s", created.id, created.date, created.start_time, created.end_time)
        return created

    def update_block(self, block_id: str, patch: Mapping) -> ScheduleBlock:
        unknown = set(patch) - _PATCHABLE_BLOCK_FIELDS
        if unknown:
            raise InvalidInput(f"Cannot update block fields: {sorted(unknown)}")
        with self._lock:
            current = self._blocks.get(block_id)
            if current is None:
                raise NotFound("block", block_id)
            updated = replace(current, **patch)
            if updated.end <= updated.start:
                raise InvalidInput("End time must be after start time")
            self._blocks[block_id] = updated
        return updated

    def delete_block(self, block_id: str) -> None:
        with self._lock:
            if self._blocks.pop(block_id, None) is None:
                raise NotFound("block", block_id)
        logger.debug("Deleted block %s", block_id)


class InMemoryCalendarProvider:
    """Dict-backed calendar."""

    def __init__(self, events: Iterable[CalendarEvent] = ()):
        self._events: dict[str, CalendarEvent] = {e.id: e for e in events}
        self._lock = threading.Lock()

    def list_events(
        self, time_min: datetime, time_max: datetime, calendar_id: str = "primary"
    ) -> list[CalendarEvent]:
        with self._lock:
            events = list(self._events.values())
        matching = [
            e
            for e in events
            if e.start is not None and e.start <= time_max and (e.end or e.start) >= time_min
        ]
        return sorted(matching, key=lambda e: (e.start, e.id))

    def get_event(self, event_id: str) -> CalendarEvent | None:
        with self._lock:
            return self._events.get(event_id)

    def create_event(self, event: CalendarEvent) -> CalendarEvent:
        if not event.id:
            event = replace(event, id=f"event_{uuid.uuid4().hex[:12]}")
        with self._lock:
            self._events[event.id] = event
        return event

    def update_event(self, event_id: str, patch: Mapping) -> CalendarEvent:
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                raise NotFound("event", event_id)
            updated = replace(current, **patch)
            self._events[event_id] = updated
        return updated

    def check_conflicts(
        self, start: datetime, end: datetime, exclude_id: str | None = None
    ) -> list[CalendarEvent]:
        window = TimeInterval(start, end)
        with self._lock:
            events = list(self._events.values())
        return [
            e
            for e in events
            if e.is_timed and e.id != exclude_id and e.start < window.end and window.start < e.end
        ]


class StaticPreferenceStore:
    """Same preferences for everyone, with optional per-user overrides."""

    def __init__(self, default: Preferences | None = None, by_user: Mapping[str, Preferences] | None = None):
        self.default = default or Preferences()
        self.by_user = dict(by_user or {})

    def get(self, user_id: str) -> Preferences:
        return self.by_user.get(user_id, self.default)


class StaticAttendeeAvailability:
    """
    Free/busy from a fixed map of attendee -> busy intervals.

    Attendees missing from the map are unknown (None), never assumed free.
    """

    def __init__(self, busy: Mapping[str, Iterable[TimeInterval]]):
        self.busy = {attendee: list(intervals) for attendee, intervals in busy.items()}

    def is_available(self, attendee: str, start: datetime, end: datetime) -> bool | None:
        if attendee not in self.busy:
            return None
        return not any(iv.start < end and start < iv.end for iv in self.busy[attendee])
