"""
Observability module: structured logging and request IDs.

Usage:
    from schedule_engine.observability import get_logger, RequestContext

    logger = get_logger(__name__)
    logger.info("Processing request", extra={"date": "2025-03-03"})

    with RequestContext(user_id="u-1") as ctx:
        logger.info("Request started")
"""

from .context import RequestContext, generate_request_id, get_request_id, get_user_id, set_request_id
from .logging import HumanFormatter, JSONFormatter, configure_logging, get_logger

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "RequestContext",
    "generate_request_id",
    "get_request_id",
    "get_user_id",
    "set_request_id",
]
