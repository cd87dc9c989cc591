"""
Error taxonomy for the scheduling engine.

- InvalidInput: malformed or inverted time ranges. Local validation, never
  retried; reported per item inside batch operations.
- NotFound: a referenced block or event id does not exist.
- CollaboratorFailure: a schedule/calendar/preference fetch or write failed.
  Raised once for the whole request, since partial data would produce
  misleading conflict and gap results.
- UnresolvedDependency: a signal the engine could not obtain (e.g. other
  attendees' availability). Recorded in results, never treated as success.

No component retries. Retry policy belongs to whoever calls the engine.
"""


class SchedulingError(Exception):
    """Base class for all scheduling engine errors."""

    pass


class InvalidInput(SchedulingError, ValueError):
    """Raised when a time, date or range is malformed or inverted."""

    pass


class NotFound(SchedulingError, LookupError):
    """Raised when a referenced block or event is absent."""

    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class CollaboratorFailure(SchedulingError):
    """
    Raised when an external collaborator call fails.

    Attributes:
        collaborator: Name of the collaborator (schedule_store, calendar, preferences)
        operation: Operation that failed (e.g. get_blocks_for_date)
    """

    def __init__(self, collaborator: str, operation: str, message: str = ""):
        self.collaborator = collaborator
        self.operation = operation
        detail = f": {message}" if message else ""
        super().__init__(f"{collaborator}.{operation} failed{detail}")


class StoreConflictError(CollaboratorFailure):
    """Raised by a schedule store when a write loses an optimistic-concurrency check."""

    def __init__(self, message: str = "concurrent modification detected"):
        super().__init__("schedule_store", "create_block", message)


class UnresolvedDependency(SchedulingError):
    """Raised or recorded when a required signal cannot be resolved."""

    pass
