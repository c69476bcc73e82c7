"""
Structured logging configuration using structlog.
"""

import structlog
import logging
import sys

from appsettings.core.config import get_config

config = get_config()

def setup_logging() -> None:
    """
    Configure structured logging for the settings service.

    Call this once at application startup.
    """

    # Configure structlog processors
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == "json":
        # JSON output for production
        renderer = structlog.processors.JSONRenderer()
    else:
        # Pretty console output for development
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    log_level = getattr(logging, config.log_level.upper())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

def bind_user(user_id: str) -> None:
    """Attach the authenticated user to every log line of the current request."""
    structlog.contextvars.bind_contextvars(user_id=user_id)

def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)
