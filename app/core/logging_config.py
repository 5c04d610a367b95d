"""
Structured logging configuration using structlog.

JSON logs in production (searchable/aggregatable), coloured console output
everywhere else. Request ids bound by the context middleware are merged
into every event.

Usage:
    from app.core.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("balance fetched", address=address, network="sepolia")
"""

import logging
import os
import sys
from typing import Any

import structlog

IS_PRODUCTION = os.getenv("APP_ENV", "development") == "production"
IS_TEST = "pytest" in sys.modules

_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog and route standard logging through stdout."""
    global _configured

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if IS_PRODUCTION:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=not IS_TEST),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Breaker transitions and third-party libraries log through stdlib logging
    logging.basicConfig(
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stdout,
        level=level,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


# Configure on import
configure_logging()
