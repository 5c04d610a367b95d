"""
Request context middleware.

Injects request_id / correlation_id into every request so logs and error
reports for one request can be found together, and logs one line per
request with its latency.

Headers:
- X-Request-ID: Unique ID for this request (generated if not provided)
- X-Correlation-ID: ID spanning multiple services (passed through)
"""

import re
import time
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.context import (
    set_request_id,
    get_request_id,
    set_correlation_id,
    get_correlation_id,
    generate_request_id,
    clear_context,
)

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"

# Reject ids that could inject into logs
MAX_ID_LENGTH = 64
SAFE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")


def _validate_id(value: Optional[str]) -> Optional[str]:
    """Return the id if it is safe to log, otherwise None."""
    if not value:
        return None
    if len(value) > MAX_ID_LENGTH:
        return None
    if not SAFE_ID_PATTERN.match(value):
        return None
    return value


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _validate_id(request.headers.get(REQUEST_ID_HEADER)) or generate_request_id()
        set_request_id(request_id)

        correlation_id = _validate_id(request.headers.get(CORRELATION_ID_HEADER))
        if correlation_id:
            set_correlation_id(correlation_id)

        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000

            response.headers[REQUEST_ID_HEADER] = get_request_id() or request_id
            if get_correlation_id():
                response.headers[CORRELATION_ID_HEADER] = get_correlation_id() or ""

            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            )
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            clear_context()
