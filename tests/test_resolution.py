"""
Tests for conflict resolution options.
"""

from schedule_engine.models import Conflict, ConflictType, Level, Preferences
from schedule_engine.planning import ResolutionKind, suggest_resolutions
from schedule_engine.time_truth import ConflictDetector
from tests.builders import MONDAY, at, busy


def only(conflicts, type_):
    matching = [c for c in conflicts if c.type == type_]
    assert len(matching) == 1
    return matching[0]


def test_hard_overlap_options():
    conflicts = ConflictDetector().detect(
        [busy("a", "09:00", "10:00", "Planning"), busy("b", "09:30", "10:30", "Review")]
    )
    options = suggest_resolutions(conflicts[0])
    assert [o.id for o in options] == ["move-second", "shorten-both"]
    move, shorten = options
    assert move.feasibility == 85
    assert move.item_id == "b"
    assert move.proposed_start == at("10:15")
    assert move.proposed_end == at("11:15")
    assert shorten.feasibility == 70
    assert shorten.proposed_end == at("09:48")
    assert shorten.affected == [{"id": "b", "title": "Review", "change": "Shorten by 12 minutes"}]


def test_short_items_cannot_be_shortened():
    conflicts = ConflictDetector().detect([busy("a", "09:00", "09:30"), busy("b", "09:15", "09:45")])
    assert [o.kind for o in suggest_resolutions(conflicts[0])] == [ResolutionKind.MOVE]


def test_buffer_violation_moves_after_buffer():
    conflicts = ConflictDetector().detect([busy("a", "09:00", "10:00"), busy("b", "10:05", "11:00")])
    conflict = conflicts[0]
    assert conflict.severity == Level.MEDIUM
    options = suggest_resolutions(conflict, buffer_minutes=20)
    assert options[0].proposed_start == at("10:20")


def test_travel_options_ranked():
    conflicts = ConflictDetector().detect(
        [busy("a", "09:00", "10:00", location="Office"), busy("b", "10:20", "11:00", location="Client")]
    )
    options = suggest_resolutions(only(conflicts, ConflictType.TRAVEL_TIME))
    assert [(o.kind, o.feasibility) for o in options] == [(ResolutionKind.VIRTUAL, 90), (ResolutionKind.MOVE, 60)]
    assert options[1].proposed_start == at("10:30")


def test_preference_moves_out_of_window():
    protected = Preferences().protected_windows(MONDAY)
    conflicts = ConflictDetector().detect([busy("m", "12:30", "13:00", "Sync")], protected)
    options = suggest_resolutions(conflicts[0])
    assert len(options) == 1
    assert options[0].description == 'Move "Sync" to after lunch'
    assert options[0].proposed_start == at("13:00")
    assert options[0].proposed_end == at("13:30")


def test_single_item_conflict_has_no_options():
    conflict = Conflict(ConflictType.RESOURCE, Level.LOW, (busy("a", "09:00", "10:00"),), "odd")
    assert suggest_resolutions(conflict) == []
