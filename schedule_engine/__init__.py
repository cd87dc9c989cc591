"""
Schedule Engine - scheduling and conflict resolution over a user's day.

Pure components (interval algebra, conflict detection, gap finding, slot
scoring, workload balancing) sit behind SchedulingService, which fetches
blocks, calendar events and preferences through injected collaborators.
"""

from .collaborators import (
    InMemoryCalendarProvider,
    InMemoryScheduleStore,
    StaticAttendeeAvailability,
    StaticPreferenceStore,
)
from .config import SchedulingConfig, get_config, load_config
from .errors import CollaboratorFailure, InvalidInput, NotFound, SchedulingError, UnresolvedDependency
from .models import (
    BatchResult,
    BusyItem,
    CalendarEvent,
    Conflict,
    Gap,
    Preferences,
    ProposedBlock,
    ScheduleBlock,
    TaskCandidate,
    TimeInterval,
)
from .scoring import ActivityRequest, ActivityType, MeetingRequest
from .service import SchedulingService

__version__ = "0.1.0"

__all__ = [
    "ActivityRequest",
    "ActivityType",
    "BatchResult",
    "BusyItem",
    "CalendarEvent",
    "CollaboratorFailure",
    "Conflict",
    "Gap",
    "InMemoryCalendarProvider",
    "InMemoryScheduleStore",
    "InvalidInput",
    "MeetingRequest",
    "NotFound",
    "Preferences",
    "ProposedBlock",
    "ScheduleBlock",
    "SchedulingConfig",
    "SchedulingError",
    "SchedulingService",
    "StaticAttendeeAvailability",
    "StaticPreferenceStore",
    "TaskCandidate",
    "TimeInterval",
    "UnresolvedDependency",
    "get_config",
    "load_config",
]
