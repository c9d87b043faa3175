"""
Observability: structured logging and request IDs.

Usage:
    from kiteschool.observability import configure_logging, get_logger, request_context

    configure_logging("INFO")
    logger = get_logger(__name__)

    with request_context():
        logger.info("Billboard refreshed", extra={"teachers": 4})
"""

from .logging import (
    CorrelationIdMiddleware,
    HumanFormatter,
    JSONFormatter,
    configure_logging,
    get_logger,
    get_request_id,
    new_request_id,
    request_context,
)

__all__ = [
    "CorrelationIdMiddleware",
    "HumanFormatter",
    "JSONFormatter",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "new_request_id",
    "request_context",
]
