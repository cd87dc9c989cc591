"""
Planning Module

Turns validated proposals into schedule writes.

Objects:
- BatchBlockPlanner (sequential, or all-or-nothing, block creation)
- KeyedLock (per user/date serialization of writes)
- ResolutionOption (ranked fixes for a detected conflict)

Invariants:
- A rejected block never affects the outcome of blocks before it
- Best-effort batches never abort early
"""

from .batch_planner import BatchBlockPlanner, PlannerMode
from .locks import KeyedLock
from .resolution import ResolutionKind, ResolutionOption, suggest_resolutions

__all__ = [
    "BatchBlockPlanner",
    "KeyedLock",
    "PlannerMode",
    "ResolutionKind",
    "ResolutionOption",
    "suggest_resolutions",
]
