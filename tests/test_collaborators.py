"""
Tests for the in-memory collaborator implementations.
"""

import pytest

from schedule_engine.collaborators import (
    InMemoryCalendarProvider,
    InMemoryScheduleStore,
    StaticAttendeeAvailability,
    StaticPreferenceStore,
)
from schedule_engine.errors import InvalidInput, NotFound, StoreConflictError
from schedule_engine.models import CalendarEvent, Preferences, ProposedBlock, TimeInterval
from tests.builders import MONDAY, at, block, event


class TestInMemoryScheduleStore:
    def test_create_assigns_id_and_date(self):
        store = InMemoryScheduleStore()
        created = store.create_block(MONDAY, ProposedBlock("work", "Focus", "09:00", "10:00"))
        assert created.id.startswith("block_")
        assert created.date == MONDAY
        assert store.get_block(created.id) == created

    def test_blocks_for_date_sorted(self):
        store = InMemoryScheduleStore(
            [
                block("late", "14:00", "15:00"),
                block("early", "09:00", "10:00"),
                block("other", "09:00", "10:00", day="2025-03-04"),
            ]
        )
        assert [b.id for b in store.get_blocks_for_date(MONDAY)] == ["early", "late"]

    def test_inverted_create_rejected(self):
        with pytest.raises(InvalidInput):
            InMemoryScheduleStore().create_block(MONDAY, ProposedBlock("work", "X", "10:00", "09:00"))

    def test_reject_overlaps(self):
        store = InMemoryScheduleStore([block("a", "09:00", "10:00")], reject_overlaps=True)
        with pytest.raises(StoreConflictError):
            store.create_block(MONDAY, ProposedBlock("work", "X", "09:30", "10:30"))
        store.create_block(MONDAY, ProposedBlock("work", "Y", "10:00", "11:00"))

    def test_update_and_delete(self):
        store = InMemoryScheduleStore([block("a", "09:00", "10:00")])
        updated = store.update_block("a", {"end_time": "10:30", "title": "Longer"})
        assert updated.duration_minutes == 90
        store.delete_block("a")
        assert store.get_block("a") is None

    def test_update_rejects_unknown_fields_and_ids(self):
        store = InMemoryScheduleStore([block("a", "09:00", "10:00")])
        with pytest.raises(InvalidInput):
            store.update_block("a", {"id": "b"})
        with pytest.raises(NotFound):
            store.update_block("missing", {"title": "x"})
        with pytest.raises(NotFound):
            store.delete_block("missing")


class TestInMemoryCalendarProvider:
    def test_list_events_in_range(self):
        calendar = InMemoryCalendarProvider(
            [
                event("in", "10:00", "11:00"),
                event("next-day", "10:00", "11:00", day="2025-03-04"),
                CalendarEvent(id="undated", summary="?", start=None, end=None),
            ]
        )
        events = calendar.list_events(at("00:00"), at("23:59"))
        assert [e.id for e in events] == ["in"]

    def test_create_assigns_id(self):
        calendar = InMemoryCalendarProvider()
        created = calendar.create_event(CalendarEvent(id="", summary="New", start=at("09:00"), end=at("10:00")))
        assert created.id.startswith("event_")
        assert calendar.get_event(created.id) == created

    def test_check_conflicts_excludes_self_and_all_day(self):
        calendar = InMemoryCalendarProvider(
            [
                event("a", "09:00", "10:00"),
                event("b", "09:30", "10:30"),
                event("all-day", "00:00", "23:59", all_day=True),
            ]
        )
        conflicts = calendar.check_conflicts(at("09:45"), at("10:15"), exclude_id="a")
        assert [e.id for e in conflicts] == ["b"]

    def test_update_missing_event(self):
        with pytest.raises(NotFound):
            InMemoryCalendarProvider().update_event("nope", {"summary": "x"})


def test_static_preferences_per_user():
    night_owl = Preferences(work_start="11:00", work_end="19:00")
    store = StaticPreferenceStore(by_user={"owl": night_owl})
    assert store.get("owl") is night_owl
    assert store.get("anyone") == Preferences()


def test_static_attendee_availability_tristate():
    availability = StaticAttendeeAvailability({"bob": [TimeInterval(at("10:00"), at("11:00"))], "ann": []})
    assert availability.is_available("bob", at("10:30"), at("11:30")) is False
    assert availability.is_available("bob", at("11:00"), at("11:30")) is True
    assert availability.is_available("ann", at("10:00"), at("11:00")) is True
    assert availability.is_available("carol", at("10:00"), at("11:00")) is None
