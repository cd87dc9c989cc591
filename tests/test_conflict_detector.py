"""
Tests for ConflictDetector: overlap, buffer, travel and preference conflicts.
"""

from schedule_engine.models import ConflictType, Level, Preferences
from schedule_engine.time_truth import ConflictDetector, summarize
from tests.builders import MONDAY, busy


def keys(conflicts):
    return [c.key for c in conflicts]


class TestOverlap:
    def test_overlapping_items_high(self):
        conflicts = ConflictDetector().detect(
            [busy("a", "09:00", "10:00", "Standup"), busy("b", "09:30", "10:30", "Review")]
        )
        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.type == ConflictType.TIME_OVERLAP
        assert conflict.severity == Level.HIGH
        assert [i.id for i in conflict.items] == ["a", "b"]
        assert conflict.description == '"Standup" overlaps with "Review"'
        assert "Move Review to after 10:00" in conflict.suggestions

    def test_touching_items_are_an_overlap(self):
        conflicts = ConflictDetector().detect([busy("a", "09:00", "10:00"), busy("b", "10:00", "11:00")])
        # The zero-minute buffer violation shares the overlap's key and is deduplicated.
        assert len(conflicts) == 1
        assert conflicts[0].severity == Level.HIGH

    def test_contained_item(self):
        conflicts = ConflictDetector(buffer_minutes=0).detect(
            [busy("outer", "09:00", "12:00"), busy("inner", "10:00", "11:00")]
        )
        assert keys(conflicts) == [("time_overlap", ("inner", "outer"))]


class TestBuffer:
    def test_five_minute_gap_is_one_medium_conflict(self):
        conflicts = ConflictDetector(buffer_minutes=15).detect(
            [busy("a", "09:00", "10:00", "Planning"), busy("b", "10:05", "11:00", "Client call")]
        )
        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.type == ConflictType.TIME_OVERLAP
        assert conflict.severity == Level.MEDIUM
        assert "Planning" in conflict.description
        assert "Client call" in conflict.description
        assert conflict.description == 'Only 5 minutes between "Planning" and "Client call"'
        assert "End Planning 10 minutes earlier" in conflict.suggestions

    def test_gap_equal_to_buffer_is_fine(self):
        conflicts = ConflictDetector(buffer_minutes=15).detect(
            [busy("a", "09:00", "10:00"), busy("b", "10:15", "11:00")]
        )
        assert conflicts == []

    def test_zero_buffer_disables_check(self):
        conflicts = ConflictDetector(buffer_minutes=0).detect(
            [busy("a", "09:00", "10:00"), busy("b", "10:05", "11:00")]
        )
        assert conflicts == []


class TestTravel:
    def test_different_locations_without_travel_time(self):
        conflicts = ConflictDetector().detect(
            [
                busy("a", "09:00", "10:00", "Workshop", location="Office"),
                busy("b", "10:20", "11:00", "Lunch meeting", location="Downtown"),
            ]
        )
        assert [c.type for c in conflicts] == [ConflictType.TRAVEL_TIME]
        travel = conflicts[0]
        assert travel.severity == Level.HIGH
        assert "Office" in travel.description and "Downtown" in travel.description

    def test_same_location_no_travel_conflict(self):
        conflicts = ConflictDetector().detect(
            [
                busy("a", "09:00", "10:00", location="Office"),
                busy("b", "10:20", "11:00", location="Office"),
            ]
        )
        assert conflicts == []

    def test_travel_check_can_be_disabled(self):
        conflicts = ConflictDetector(check_travel_time=False).detect(
            [
                busy("a", "09:00", "10:00", location="Office"),
                busy("b", "10:20", "11:00", location="Downtown"),
            ]
        )
        assert conflicts == []

    def test_travel_sorted_before_medium_buffer(self):
        conflicts = ConflictDetector().detect(
            [
                busy("b", "10:10", "11:00", location="Downtown"),
                busy("a", "09:00", "10:00", location="Office"),
            ]
        )
        assert [(c.type, c.severity) for c in conflicts] == [
            (ConflictType.TRAVEL_TIME, Level.HIGH),
            (ConflictType.TIME_OVERLAP, Level.MEDIUM),
        ]


class TestPreference:
    def test_item_over_lunch(self):
        protected = Preferences().protected_windows(MONDAY)
        conflicts = ConflictDetector().detect([busy("m", "12:30", "13:30", "Sync")], protected)
        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.type == ConflictType.PREFERENCE
        assert conflict.severity == Level.MEDIUM
        assert conflict.description == '"Sync" conflicts with lunch time'
        assert conflict.items[1].id == f"lunch-{MONDAY}"

    def test_break_block_inside_lunch_is_not_a_breach(self):
        protected = Preferences().protected_windows(MONDAY)
        conflicts = ConflictDetector().detect([busy("l", "12:00", "13:00", "Lunch", kind="break")], protected)
        assert conflicts == []


class TestOrderingAndDedup:
    def test_independent_of_input_order(self):
        items = [
            busy("a", "09:00", "10:00"),
            busy("b", "09:30", "10:30"),
            busy("c", "10:40", "11:00"),
            busy("d", "14:00", "15:00"),
        ]
        detector = ConflictDetector()
        assert keys(detector.detect(items)) == keys(detector.detect(list(reversed(items))))

    def test_no_duplicate_keys(self):
        items = [busy("a", "09:00", "10:00"), busy("b", "09:00", "10:00"), busy("c", "10:00", "10:30")]
        conflicts = ConflictDetector().detect(items)
        assert len(keys(conflicts)) == len(set(keys(conflicts)))

    def test_does_not_mutate_input(self):
        items = [busy("b", "10:05", "11:00"), busy("a", "09:00", "10:00")]
        snapshot = list(items)
        ConflictDetector().detect(items)
        assert items == snapshot


def test_summarize_counts_by_severity():
    conflicts = ConflictDetector().detect(
        [busy("a", "09:00", "10:00"), busy("b", "09:30", "10:30"), busy("c", "10:40", "11:00")]
    )
    summary = summarize(conflicts)
    assert summary == {"total": 2, "high": 1, "medium": 1, "low": 0}
