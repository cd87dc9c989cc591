"""
Conflict resolution options.

Deterministic proposals for a detected conflict, ranked by feasibility
(0..100). Nothing here mutates a schedule; callers apply an option through
the schedule store or calendar provider.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from schedule_engine.models import Conflict, ConflictType, Level, _Serializable
from schedule_engine.timeutil import round_half_up

logger = logging.getLogger(__name__)

MOVE_GAP_MINUTES = 15
SHORTEN_FACTOR = 0.8
SHORTEN_MIN_DURATION_MINUTES = 30
MAX_OPTIONS = 5


class ResolutionKind(StrEnum):
    MOVE = "move"
    SHORTEN = "shorten"
    VIRTUAL = "virtual"


@dataclass
class ResolutionOption(_Serializable):
    id: str
    kind: ResolutionKind
    description: str
    impact: Level
    feasibility: int
    recommendation: str
    item_id: str
    proposed_start: datetime | None = None
    proposed_end: datetime | None = None
    affected: list[dict] = field(default_factory=list)


def _move_after(conflict: Conflict, gap_minutes: int, feasibility: int) -> ResolutionOption:
    first, second = conflict.items[0], conflict.items[1]
    new_start = first.end + timedelta(minutes=gap_minutes)
    return ResolutionOption(
        id="move-second",
        kind=ResolutionKind.MOVE,
        description=f'Move "{second.title}" to a different time slot',
        impact=Level.LOW,
        feasibility=feasibility,
        recommendation="Least disruptive option - moves only one item",
        item_id=second.id,
        proposed_start=new_start,
        proposed_end=new_start + (second.end - second.start),
    )


def _shorten_both(conflict: Conflict) -> ResolutionOption | None:
    first, second = conflict.items[0], conflict.items[1]
    if first.duration_minutes <= SHORTEN_MIN_DURATION_MINUTES:
        return None
    if second.duration_minutes <= SHORTEN_MIN_DURATION_MINUTES:
        return None
    trim = round_half_up(second.duration_minutes * (1 - SHORTEN_FACTOR))
    return ResolutionOption(
        id="shorten-both",
        kind=ResolutionKind.SHORTEN,
        description="Shorten both items to fit",
        impact=Level.MEDIUM,
        feasibility=70,
        recommendation="Good if both items can be condensed",
        item_id=first.id,
        proposed_start=first.start,
        proposed_end=first.start + (first.end - first.start) * SHORTEN_FACTOR,
        affected=[{"id": second.id, "title": second.title, "change": f"Shorten by {trim} minutes"}],
    )


def _make_virtual(conflict: Conflict) -> ResolutionOption:
    second = conflict.items[1]
    return ResolutionOption(
        id="make-virtual",
        kind=ResolutionKind.VIRTUAL,
        description=f'Convert "{second.title}" to virtual/remote',
        impact=Level.LOW,
        feasibility=90,
        recommendation="Eliminates travel time completely",
        item_id=second.id,
    )


def _move_out_of_window(conflict: Conflict) -> ResolutionOption:
    item, window = conflict.items[0], conflict.items[1]
    return ResolutionOption(
        id="move-out-of-protected",
        kind=ResolutionKind.MOVE,
        description=f'Move "{item.title}" to after {window.title.lower()}',
        impact=Level.LOW,
        feasibility=80,
        recommendation="Keeps protected time intact",
        item_id=item.id,
        proposed_start=window.end,
        proposed_end=window.end + (item.end - item.start),
    )


def suggest_resolutions(conflict: Conflict, buffer_minutes: int = MOVE_GAP_MINUTES) -> list[ResolutionOption]:
    """
    Propose up to five ways to resolve a conflict, most feasible first.

    - overlap (high): move the second item after the first (+15 min), or
      shorten both when both run longer than 30 minutes
    - buffer violation (medium overlap): move the second item to leave the buffer
    - travel time: make the second item virtual, or move it after the first
    - preference: move the item out of the protected window
    """
    if len(conflict.items) < 2:
        return []

    options: list[ResolutionOption] = []
    if conflict.type == ConflictType.TIME_OVERLAP:
        if conflict.severity == Level.HIGH:
            options.append(_move_after(conflict, MOVE_GAP_MINUTES, feasibility=85))
            shorten = _shorten_both(conflict)
            if shorten:
                options.append(shorten)
        else:
            options.append(_move_after(conflict, buffer_minutes, feasibility=85))
    elif conflict.type == ConflictType.TRAVEL_TIME:
        options.append(_make_virtual(conflict))
        options.append(_move_after(conflict, MOVE_GAP_MINUTES * 2, feasibility=60))
    elif conflict.type == ConflictType.PREFERENCE:
        options.append(_move_out_of_window(conflict))

    options.sort(key=lambda o: -o.feasibility)
    logger.debug("%d resolution options for %s conflict", len(options), conflict.type.value)
    return options[:MAX_OPTIONS]
