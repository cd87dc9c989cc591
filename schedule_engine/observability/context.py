"""
Request context management with context variables.

Each SchedulingService call runs inside a RequestContext so every log line
emitted by the engine carries the same request id (and user id, when known).
"""

import contextvars
import uuid
from typing import Optional

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)
_user_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "user_id", default=None
)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return _request_id_var.get()


def set_request_id(request_id: str) -> contextvars.Token:
    """Set the request ID in context. Returns token for reset."""
    return _request_id_var.set(request_id)


def get_user_id() -> Optional[str]:
    return _user_id_var.get()


def generate_request_id() -> str:
    """Generate a new request ID."""
    return f"req-{uuid.uuid4().hex[:16]}"


class RequestContext:
    """
    Context manager for request-scoped operations.

    Usage:
        with RequestContext(user_id="u-1") as ctx:
            logger.info("Finding gaps")  # carries ctx.request_id

        # Or with an existing ID:
        with RequestContext(request_id="req-abc123"):
            ...
    """

    def __init__(self, request_id: Optional[str] = None, user_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self.user_id = user_id
        self._tokens: list[tuple[contextvars.ContextVar, contextvars.Token]] = []

    def __enter__(self) -> "RequestContext":
        self._tokens.append((_request_id_var, set_request_id(self.request_id)))
        if self.user_id is not None:
            self._tokens.append((_user_id_var, _user_id_var.set(self.user_id)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
