"""
Scoring Module

Ranks candidate time windows. One scoring shape (base + weighted factors)
serves meeting placement, task-to-slot fitting and activity placement.
"""

from .complexity import estimate_task_complexity
from .slot_scorer import (
    ActivityCandidate,
    ActivityRequest,
    ActivityType,
    GapAssignment,
    MeetingRequest,
    MeetingSearchResult,
    SlotScorer,
    tally,
)

__all__ = [
    "ActivityCandidate",
    "ActivityRequest",
    "ActivityType",
    "GapAssignment",
    "MeetingRequest",
    "MeetingSearchResult",
    "SlotScorer",
    "estimate_task_complexity",
    "tally",
]
