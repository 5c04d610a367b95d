"""
Circuit breaker installation over service objects.

Wraps selected methods of a long-lived service client in dedicated
CircuitBreakers without touching the client itself. The returned proxy has
the same calling surface as the service, so it can be injected anywhere the
unwrapped client was used.

Usage:
    from app.core.guarded_service import with_circuit_breaker

    rpc = with_circuit_breaker(EthereumRpcClient(...), "get_balance", failure_threshold=3)
    rpc = with_circuit_breaker(rpc, "verify_transaction", reset_timeout_ms=10_000)

    balance = await rpc.get_balance(address)  # routed through its breaker
    rpc.breaker("get_balance").state           # CircuitState.CLOSED
"""

import functools
import inspect
from typing import Any, Callable, Dict, List, Optional

from app.core.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry

__all__ = ["GuardedService", "with_circuit_breaker"]

DEFAULT_FAILURE_THRESHOLD = 3
DEFAULT_RESET_TIMEOUT_MS = 30000

_OWN_ATTRIBUTES = frozenset({"_service", "_breakers", "_wrappers"})


class GuardedService:
    """Proxy that routes guarded methods of a service through circuit breakers."""

    def __init__(self, service: Any):
        if isinstance(service, GuardedService):
            raise TypeError("service is already guarded; call guard() on the existing proxy")
        self._service = service
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._wrappers: Dict[str, Callable[..., Any]] = {}

    def guard(
        self,
        method_name: str,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        reset_timeout_ms: int = DEFAULT_RESET_TIMEOUT_MS,
        call_timeout_ms: Optional[int] = None,
    ) -> "GuardedService":
        """
        Install a circuit breaker on one method of the wrapped service.

        Args:
            method_name: Name of a callable attribute of the service
            failure_threshold: Failures before the circuit opens
            reset_timeout_ms: Milliseconds in OPEN before a probe is allowed
            call_timeout_ms: Optional per-call timeout for coroutine methods

        Returns:
            This proxy, for chaining

        Raises:
            ValueError: If the method already has a breaker
            AttributeError: If the service has no such callable attribute
        """
        if method_name in self._breakers:
            raise ValueError(f"{type(self._service).__name__}.{method_name} is already guarded by a circuit breaker")

        target = getattr(self._service, method_name, None)
        if not callable(target):
            raise AttributeError(f"{type(self._service).__name__} has no callable attribute {method_name!r}")

        breaker = CircuitBreaker(
            service=self._service,
            method=method_name,
            failure_threshold=failure_threshold,
            reset_timeout_ms=reset_timeout_ms,
            call_timeout_ms=call_timeout_ms,
        )
        self._breakers[method_name] = breaker
        self._wrappers[method_name] = _make_wrapper(target, breaker)
        CircuitBreakerRegistry.register(breaker)
        return self

    def breaker(self, method_name: str) -> CircuitBreaker:
        try:
            return self._breakers[method_name]
        except KeyError:
            raise KeyError(f"{method_name} is not guarded") from None

    @property
    def wrapped(self) -> Any:
        return self._service

    @property
    def guarded_methods(self) -> List[str]:
        return list(self._breakers)

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not found on the proxy itself
        if name in _OWN_ATTRIBUTES:
            raise AttributeError(name)
        wrapper = self._wrappers.get(name)
        if wrapper is not None:
            return wrapper
        return getattr(self._service, name)

    def __repr__(self) -> str:
        return f"GuardedService({self._service!r}, guarded={self.guarded_methods})"


def _make_wrapper(target: Callable[..., Any], breaker: CircuitBreaker) -> Callable[..., Any]:
    if inspect.iscoroutinefunction(target):

        @functools.wraps(target)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            return await breaker.execute(*args, **kwargs)

        return async_wrapper

    @functools.wraps(target)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        return breaker.call(*args, **kwargs)

    return sync_wrapper


def with_circuit_breaker(
    service: Any,
    method_name: str,
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    reset_timeout_ms: int = DEFAULT_RESET_TIMEOUT_MS,
    call_timeout_ms: Optional[int] = None,
) -> GuardedService:
    """
    Protect service.method_name with a dedicated circuit breaker.

    A plain service gets a new GuardedService proxy; an existing proxy is
    extended and returned. The service object itself is never modified.
    Installing twice on the same method raises ValueError.
    """
    proxy = service if isinstance(service, GuardedService) else GuardedService(service)
    return proxy.guard(
        method_name,
        failure_threshold=failure_threshold,
        reset_timeout_ms=reset_timeout_ms,
        call_timeout_ms=call_timeout_ms,
    )
