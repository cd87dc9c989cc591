"""
Tests for focus time, slot availability and break protection.
"""

import pytest

from schedule_engine.errors import InvalidInput
from schedule_engine.models import BreakWindow, BusySource, Level, Preferences
from schedule_engine.time_truth import analyze_breaks, calculate_focus_time, check_slot_availability
from schedule_engine.time_truth.focus import fragmentation_index
from tests.builders import MONDAY, block, busy


@pytest.fixture
def work_window():
    return Preferences().work_window(MONDAY)


# =============================================================================
# Focus time
# =============================================================================


class TestFocusTime:
    def test_empty_day_is_one_high_quality_block(self, work_window):
        report = calculate_focus_time(MONDAY, work_window, [])
        assert report.total_available_minutes == 480
        assert report.longest_block_minutes == 480
        assert report.fragmentation_index == 0.0
        assert report.high_quality_blocks == 1
        assert report.recommendations == []

    def test_work_blocks_do_not_interrupt_focus(self, work_window):
        report = calculate_focus_time(MONDAY, work_window, [busy("deep", "09:00", "17:00", kind="work")])
        assert report.total_available_minutes == 480

    def test_meeting_heavy_day_is_fragmented(self, work_window):
        meetings = [
            busy(f"m{i}", start, end, kind="meeting")
            for i, (start, end) in enumerate(
                [("10:00", "10:30"), ("11:30", "12:00"), ("13:00", "13:30"), ("14:30", "15:00"), ("16:00", "16:30")]
            )
        ]
        report = calculate_focus_time(MONDAY, work_window, meetings)
        assert [b.duration_minutes for b in report.blocks] == [60, 60, 60, 60, 60]
        assert report.fragmentation_index == pytest.approx(0.6)
        assert report.summary()["fragmentation_percentage"] == 60
        assert report.recommendations == [
            "Consider consolidating meetings to create longer focus blocks",
            "No blocks longer than 2 hours - protect morning time for deep work",
            "No high-quality focus blocks - aim for at least one 2+ hour block",
        ]

    def test_fragmentation_index_bounds(self):
        assert fragmentation_index([]) == 0.0
        assert fragmentation_index([400]) == 0.0
        assert 0.0 <= fragmentation_index([30] * 10) <= 1.0


# =============================================================================
# Availability
# =============================================================================


class TestAvailability:
    def test_free_slot(self):
        result = check_slot_availability(MONDAY, "10:00", "11:00", [], Preferences())
        assert result.is_available is True
        assert result.outside_work_hours is False
        assert result.conflicts == []

    def test_overlapping_item(self):
        items = [busy("m", "10:30", "11:30")]
        result = check_slot_availability(MONDAY, "10:00", "11:00", items, Preferences())
        assert result.is_available is False
        assert [c.id for c in result.conflicts] == ["m"]

    def test_touching_item_only_conflicts_with_buffer(self):
        items = [busy("m", "11:00", "12:00")]
        assert check_slot_availability(MONDAY, "10:00", "11:00", items, Preferences()).is_available
        assert not check_slot_availability(MONDAY, "10:00", "11:00", items, Preferences(), 15).is_available

    def test_lunch_is_a_conflict(self):
        result = check_slot_availability(MONDAY, "12:30", "13:00", [], Preferences())
        assert result.is_available is False
        assert result.conflicts[0].source == BusySource.PREFERENCE_BLOCK

    def test_outside_work_hours_is_flagged_not_blocking(self):
        result = check_slot_availability(MONDAY, "18:00", "19:00", [], Preferences())
        assert result.is_available is True
        assert result.outside_work_hours is True

    def test_summary_splits_sources(self):
        items = [busy("b", "10:00", "10:30"), busy("e", "10:15", "10:45", source=BusySource.CALENDAR_EVENT)]
        summary = check_slot_availability(MONDAY, "10:00", "11:00", items, Preferences()).summary()
        assert summary == {
            "available": False,
            "conflict_count": 2,
            "calendar_conflicts": 1,
            "schedule_conflicts": 1,
        }

    def test_inverted_range_rejected(self):
        with pytest.raises(InvalidInput):
            check_slot_availability(MONDAY, "11:00", "10:00", [], Preferences())


# =============================================================================
# Breaks
# =============================================================================


class TestBreaks:
    def test_missing_lunch(self):
        report = analyze_breaks(MONDAY, [], [], Preferences())
        assert len(report.violations) == 1
        assert report.violations[0].severity == Level.HIGH
        assert report.actions[0].description == "Schedule lunch break"
        assert report.actions[0].target_time == "12:00"
        assert report.protection_score == 0

    def test_lunch_block_satisfies_lunch(self):
        blocks = [block("lunch", "12:00", "13:00", type="break", title="Lunch")]
        report = analyze_breaks(MONDAY, blocks, [], Preferences())
        assert report.violations == []
        assert report.protection_score == 33

    def test_long_stretch_needs_a_break(self):
        blocks = [
            block("a", "09:00", "10:00"),
            block("b", "10:10", "11:30"),
            block("c", "11:40", "13:00"),
        ]
        report = analyze_breaks(MONDAY, blocks, [], Preferences())
        lunch, stretch = report.violations
        assert lunch.conflicting_item.id == "c"
        assert stretch.severity == Level.MEDIUM
        assert stretch.expected_time == "11:00"
        assert report.actions[1].description == "Add break after 4 hours of continuous work"

    def test_events_join_stretches(self):
        blocks = [block("lunch", "12:00", "13:00", type="break", title="Lunch break")]
        events = [
            busy("e1", "13:00", "15:00", source=BusySource.CALENDAR_EVENT),
            busy("e2", "15:10", "17:00", source=BusySource.CALENDAR_EVENT),
        ]
        report = analyze_breaks(MONDAY, blocks, events, Preferences())
        assert [v.expected_time for v in report.violations] == ["14:00"]

    def test_configured_breaks_raise_expectation(self):
        prefs = Preferences(break_schedule=[BreakWindow("15:00", 15, "Afternoon break")])
        blocks = [block("lunch", "12:00", "13:00", type="break", title="Lunch")]
        report = analyze_breaks(MONDAY, blocks, [], prefs)
        assert [b.label for b in report.expected_breaks] == ["lunch", "Afternoon break"]
        assert report.protection_score == 25

    def test_actions_capped_at_three(self):
        blocks = [
            block("a", "06:00", "09:30"),
            block("b", "10:00", "13:30"),
            block("c", "14:00", "17:30"),
            block("d", "18:00", "21:30"),
        ]
        report = analyze_breaks(MONDAY, blocks, [], Preferences())
        assert len(report.violations) == 5
        assert len(report.actions) == 3

