"""
Time Truth Module

Interval algebra over a single day: merge busy time, detect conflicts,
find free gaps, and derive focus, availability and break reports.

Objects:
- BusyItem (schedule blocks, calendar events, protected preference windows)
- Conflict (overlap, buffer, travel, preference)
- Gap (classified free time inside the work day)

Invariants:
- Merged intervals are sorted and non-overlapping
- Gaps and busy time partition the work day
- Conflict detection is symmetric under input reordering
"""

from .availability import SlotAvailability, check_slot_availability
from .breaks import BreakReport, analyze_breaks
from .conflict_detector import ConflictDetector, summarize
from .focus import FocusReport, calculate_focus_time
from .gap_finder import classify_gap, complement, find_gaps, gap_statistics
from .interval_set import clip, merge, overlaps, total_minutes

__all__ = [
    "BreakReport",
    "ConflictDetector",
    "FocusReport",
    "SlotAvailability",
    "analyze_breaks",
    "calculate_focus_time",
    "check_slot_availability",
    "classify_gap",
    "clip",
    "complement",
    "find_gaps",
    "gap_statistics",
    "merge",
    "overlaps",
    "total_minutes",
    "summarize",
]
