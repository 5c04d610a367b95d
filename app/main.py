import logging
import os
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.api import payments, prices, wallets
from app.core.circuit_breaker import CircuitOpenError, CircuitState, set_notification_callback
from app.core.config import settings
from app.core.errors import capture_exception, capture_message, init_sentry
from app.core.health_check import HealthCheck
from app.core.logging_config import configure_logging
from app.core.service_errors import ServiceError
from app.middleware.context import RequestContextMiddleware
from app.schemas import ErrorResponse
from app.services.container import ServiceContainer

logger = logging.getLogger(__name__)

INVALID_ARGUMENT = "INVALID_ARGUMENT"


def _report_circuit_change(name: str, old_state: str, new_state: str) -> None:
    level = "warning" if new_state == CircuitState.OPEN.value else "info"
    capture_message(
        f"Circuit {name}: {old_state} -> {new_state}",
        level=level,
        context={"circuit": name, "old_state": old_state, "new_state": new_state},
        tags={"circuit": name},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.APP_ENV,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        release=os.getenv("GIT_COMMIT_SHA"),
    )
    set_notification_callback(_report_circuit_change)

    logger.info("=" * 50)
    logger.info(f"{settings.PROJECT_NAME} Starting")
    logger.info(f"Blockchain network: {settings.BLOCKCHAIN_NETWORK}")
    logger.info("=" * 50)

    # Tests may install their own container before startup
    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        app.state.services = ServiceContainer.from_settings(settings)

    try:
        yield
    finally:
        set_notification_callback(None)
        if owns_services:
            await app.state.services.aclose()
            app.state.services = None


app = FastAPI(title=settings.PROJECT_NAME, openapi_url=f"{settings.API_V1_STR}/openapi.json", lifespan=lifespan)


def _error_response(status_code: int, message: str, kind: str) -> JSONResponse:
    body = ErrorResponse(message=message, kind=kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(CircuitOpenError)
async def circuit_open_handler(request: Request, exc: CircuitOpenError) -> JSONResponse:
    logger.warning(f"Rejected {request.url.path}: {exc}")
    return _error_response(503, str(exc), "circuit_open")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.code == INVALID_ARGUMENT:
        return _error_response(400, exc.message, exc.kind.value)
    logger.error(f"{exc.name} on {request.url.path}: {exc.message}")
    return _error_response(500, exc.message, exc.kind.value)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    capture_exception(exc, context={"path": request.url.path, "method": request.method})
    return _error_response(500, "Something went wrong", "internal")


app.add_middleware(cast(Any, ProxyHeadersMiddleware), trusted_hosts=["*"])
app.add_middleware(
    cast(Any, CORSMiddleware),
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Correlation-ID"],
)
app.add_middleware(cast(Any, RequestContextMiddleware))

app.include_router(prices.router, prefix=f"{settings.API_V1_STR}/prices", tags=["prices"])
app.include_router(wallets.router, prefix=settings.API_V1_STR, tags=["wallets"])
app.include_router(payments.router, prefix=f"{settings.API_V1_STR}/payments", tags=["payments"])


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/circuits")
def health_circuits():
    """
    State of every circuit breaker.

    "critical" while any dependency is short-circuited, "warning" while one
    is probing for recovery.
    """
    return HealthCheck.check_circuit_health()
