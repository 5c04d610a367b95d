"""
Sentry reporting for unexpected errors and circuit breaker transitions.

capture_exception / capture_message always emit a structlog event carrying
the current request ids, and are forwarded to Sentry only when init_sentry
succeeded (a DSN is configured).

Usage:
    capture_exception(exc, context={"path": "/api/v1/payments/KPY-1/verify"})
    capture_message("Circuit PriceService.get_price: closed -> open", level="warning")

Classification of collaborator failures lives in app.core.service_errors.
"""

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import structlog

from app.core.context import get_context_dict, get_request_id

logger = structlog.get_logger(__name__)

__all__ = [
    "init_sentry",
    "capture_exception",
    "capture_message",
    "is_sentry_enabled",
]

_sentry_initialized: bool = False


def init_sentry(
    dsn: str,
    environment: str = "production",
    traces_sample_rate: float = 0.1,
    release: Optional[str] = None,
) -> bool:
    """
    Enable Sentry with the FastAPI and logging integrations.

    Returns False (reporting stays log-only) when no DSN is configured, the
    SDK is unavailable or initialization fails.
    """
    global _sentry_initialized

    if not dsn:
        logger.info("Sentry disabled (no DSN provided)")
        return False

    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration
    except ImportError:
        logger.warning("Sentry SDK not installed, error tracking disabled")
        return False

    release = release or os.environ.get("GIT_COMMIT_SHA")
    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            release=release,
            traces_sample_rate=traces_sample_rate,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            before_send=_before_send,
        )
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))
        return False

    _sentry_initialized = True
    logger.info("Sentry initialized", environment=environment, release=release)
    return True


def _before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    # Health probes are polled constantly; never report them
    if "/health" in event.get("request", {}).get("url", ""):
        return None

    request_id = get_request_id()
    if request_id:
        event.setdefault("tags", {})["request_id"] = request_id
    return event


def is_sentry_enabled() -> bool:
    return _sentry_initialized


def _enrich(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        **get_context_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **(context or {}),
    }


@contextmanager
def _sentry_scope(
    extras: Dict[str, Any],
    level: str,
    tags: Optional[Dict[str, str]] = None,
    fingerprint: Optional[List[str]] = None,
) -> Iterator[Any]:
    import sentry_sdk

    with sentry_sdk.new_scope() as scope:
        for key, value in extras.items():
            if value is not None:
                scope.set_extra(key, value)
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        if fingerprint:
            scope.fingerprint = fingerprint
        scope.level = level
        yield sentry_sdk


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
    fingerprint: Optional[List[str]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Log an unexpected exception and report it to Sentry.

    Returns:
        Sentry event ID, or None when Sentry is disabled or unreachable
    """
    extras = {**_enrich(context), "error_type": type(exc).__name__}
    logger.error("Exception captured", exc_info=exc, **extras)

    if not _sentry_initialized:
        return None
    try:
        with _sentry_scope(extras, level, tags, fingerprint) as sdk:
            return sdk.capture_exception(exc)
    except Exception as e:
        logger.warning("Failed to send exception to Sentry", error=str(e))
        return None


def capture_message(
    message: str,
    level: str = "info",
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """Log an operational event (e.g. a breaker transition) and report it to Sentry."""
    extras = _enrich(context)
    getattr(logger, level, logger.info)(message, **extras)

    if not _sentry_initialized:
        return None
    try:
        with _sentry_scope(extras, level, tags) as sdk:
            return sdk.capture_message(message, level=level)
    except Exception as e:
        logger.warning("Failed to send message to Sentry", error=str(e))
        return None
