"""
Test fixtures for nairaswap-api tests.

Provides breaker registry isolation, fake collaborators and an
httpx client factory backed by httpx.MockTransport.
"""

from typing import Any, Callable, List

import httpx
import pytest

from app.core import circuit_breaker
from app.core.circuit_breaker import CircuitBreakerRegistry


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Start every test with an empty registry and no notification callback."""
    CircuitBreakerRegistry.clear()
    circuit_breaker.set_notification_callback(None)
    yield
    CircuitBreakerRegistry.clear()
    circuit_breaker.set_notification_callback(None)


class FlakyService:
    """Collaborator whose calls fail while `failing` is True."""

    def __init__(self, failing: bool = False):
        self.failing = failing
        self.calls: List[Any] = []
        self.network = "sepolia"

    async def fetch(self, value: Any = None) -> Any:
        self.calls.append(value)
        if self.failing:
            raise ConnectionError("connection refused")
        return {"value": value}

    def fetch_sync(self, value: Any = None) -> Any:
        self.calls.append(value)
        if self.failing:
            raise ConnectionError("connection refused")
        return {"value": value}


@pytest.fixture
def flaky_service() -> FlakyService:
    return FlakyService()


@pytest.fixture
def mock_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by `handler`."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
