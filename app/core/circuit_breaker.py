import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, Optional
import logging

logger = logging.getLogger(__name__)

# Type alias for notification callback - return value is ignored
StateChangeCallback = Callable[[str, str, str], Any]  # (name, old_state, new_state)

# Global notification callback - set by application on startup
_notification_callback: Optional[StateChangeCallback] = None


def set_notification_callback(callback: Optional[StateChangeCallback]) -> None:
    """Set (or clear, with None) the global callback for circuit breaker state changes."""
    global _notification_callback
    _notification_callback = callback


def _notify_state_change(name: str, old_state: str, new_state: str) -> None:
    """Notify about state change if callback is registered."""
    if _notification_callback:
        try:
            _notification_callback(name, old_state, new_state)
        except Exception as e:
            logger.error(f"Circuit breaker notification failed: {e}")


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Probing if recovered


class CircuitOpenError(Exception):
    """Raised instead of forwarding a call while the circuit is open."""

    def __init__(self, method: str):
        super().__init__(f"Circuit breaker is open for {method}")
        self.method = method


class CallTimeoutError(TimeoutError):
    """Raised when a forwarded call exceeds the breaker's call timeout."""

    def __init__(self, method: str, timeout_ms: int):
        super().__init__(f"Call to {method} timed out after {timeout_ms} ms")
        self.method = method
        self.timeout_ms = timeout_ms


@dataclass(eq=False)
class CircuitBreaker:
    """
    Failure-counting guard around one method of one service object.

    CLOSED forwards calls and opens after failure_threshold failures.
    OPEN rejects calls with CircuitOpenError until more than
    reset_timeout_ms have passed since the last failure, then lets one
    probe through as HALF_OPEN. A successful probe closes the circuit and
    resets the failure count; a failed probe reopens it.

    The cooldown is checked lazily on the next call; there are no timers.
    """

    service: Any = field(repr=False)
    method: str
    failure_threshold: int = 3
    reset_timeout_ms: int = 30000
    call_timeout_ms: Optional[int] = None
    name: str = ""

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: datetime | None = field(default=None, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be a positive integer")
        if self.reset_timeout_ms < 1:
            raise ValueError("reset_timeout_ms must be a positive integer")
        if self.call_timeout_ms is not None and self.call_timeout_ms < 1:
            raise ValueError("call_timeout_ms must be a positive integer or None")
        if not self.name:
            self.name = f"{type(self.service).__name__}.{self.method}"

    @property
    def state(self) -> CircuitState:
        """Return current state. Transitions only happen on calls."""
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_time(self) -> Optional[datetime]:
        return self._last_failure_time

    def _set_state(self, new_state: CircuitState, reason: str = "") -> None:
        """Must be called while holding self._lock."""
        old_state = self._state
        self._state = new_state
        message = f"Circuit {self.name}: {old_state.name} -> {new_state.name}"
        if reason:
            message = f"{message} ({reason})"
        if new_state == CircuitState.OPEN:
            logger.warning(message)
        else:
            logger.info(message)
        _notify_state_change(self.name, old_state.value, new_state.value)

    def _elapsed_ms(self) -> int:
        assert self._last_failure_time is not None
        return (datetime.now(timezone.utc) - self._last_failure_time) // timedelta(milliseconds=1)

    def _check_recovery_transition(self) -> bool:
        """Check if circuit should transition from OPEN to HALF_OPEN.

        Must be called while holding self._lock.
        Returns True if state changed.
        """
        if self._state == CircuitState.OPEN and self._last_failure_time:
            if self._elapsed_ms() > self.reset_timeout_ms:
                self._half_open_calls = 0
                self._set_state(CircuitState.HALF_OPEN, "reset timeout elapsed")
                return True
        return False

    def _acquire(self) -> bool:
        """Admit a call or raise CircuitOpenError. Never touches failure counters.

        Returns True if the admitted call is the HALF_OPEN probe.
        """
        with self._lock:
            self._check_recovery_transition()

            if self._state == CircuitState.OPEN:
                raise CircuitOpenError(self.method)
            if self._state == CircuitState.HALF_OPEN:
                # Only one probe at a time
                if self._half_open_calls >= 1:
                    raise CircuitOpenError(self.method)
                self._half_open_calls += 1
                return True
            return False

    def _release_probe(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_calls > 0:
                self._half_open_calls -= 1

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._failure_count = 0
                self._half_open_calls = 0
                self._set_state(CircuitState.CLOSED, "probe succeeded")

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = datetime.now(timezone.utc)

            if self._state == CircuitState.HALF_OPEN:
                self._half_open_calls = 0
                self._set_state(CircuitState.OPEN, "probe failed")
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                self._set_state(CircuitState.OPEN, "threshold reached")

    def _target(self) -> Callable[..., Any]:
        return getattr(self.service, self.method)

    def _invoke(self, probe: bool, args: Any, kwargs: Any) -> Any:
        try:
            return self._target()(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        except BaseException:
            # Interrupted, not failed: give the probe slot back
            if probe:
                self._release_probe()
            raise

    async def _settle(self, probe: bool, pending: Awaitable[Any]) -> Any:
        """Await a pending result and record its outcome."""
        try:
            if self.call_timeout_ms:
                try:
                    result = await asyncio.wait_for(pending, timeout=self.call_timeout_ms / 1000)
                except asyncio.TimeoutError as e:
                    raise CallTimeoutError(self.method, self.call_timeout_ms) from e
            else:
                result = await pending
        except Exception:
            self.record_failure()
            raise
        except BaseException:
            if probe:
                self._release_probe()
            raise
        self.record_success()
        return result

    async def execute(self, *args: Any, **kwargs: Any) -> Any:
        """Forward a call to the guarded method, awaiting its result."""
        probe = self._acquire()
        result = self._invoke(probe, args, kwargs)
        if inspect.isawaitable(result):
            return await self._settle(probe, result)
        self.record_success()
        return result

    def call(self, *args: Any, **kwargs: Any) -> Any:
        """
        Forward a call to a plain (non-async) guarded method.

        If the method hands back an awaitable, the outcome is only known once
        it is awaited: a coroutine is returned that records it then.
        """
        probe = self._acquire()
        result = self._invoke(probe, args, kwargs)
        if inspect.isawaitable(result):
            return self._settle(probe, result)
        self.record_success()
        return result


class CircuitBreakerRegistry:
    """Process-wide index of installed breakers, used for health reporting."""

    _breakers: Dict[str, CircuitBreaker] = {}

    @classmethod
    def register(cls, breaker: CircuitBreaker) -> CircuitBreaker:
        if breaker.name in cls._breakers and cls._breakers[breaker.name] is not breaker:
            logger.warning(f"Circuit {breaker.name}: replacing previously registered breaker")
        cls._breakers[breaker.name] = breaker
        return breaker

    @classmethod
    def get(cls, name: str) -> Optional[CircuitBreaker]:
        return cls._breakers.get(name)

    @classmethod
    def get_all_states(cls) -> Dict[str, str]:
        return {name: cb.state.value for name, cb in cls._breakers.items()}

    @classmethod
    def clear(cls) -> None:
        cls._breakers = {}
