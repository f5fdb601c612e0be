"""
Circuit breaker for the refund wallet bridge.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from consigne.infrastructure.monitoring import metrics

T = TypeVar("T")

_STATE_GAUGE = {"closed": 0, "open": 1, "half_open": 2}


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreakerError(Exception):
    """Raised when circuit is open."""


class CircuitBreaker:
    """
    Circuit breaker for external service calls.

    Opens after ``failure_threshold`` consecutive failures and rejects calls
    until ``recovery_timeout`` has passed; the next call then runs as a
    half-open probe.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        expected_exceptions: tuple[type[BaseException], ...] = (Exception,),
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Service name (metrics label)
            failure_threshold: Number of failures before opening circuit
            recovery_timeout: Seconds to wait before trying again (half-open)
            expected_exceptions: Exception types that count as failure
            clock: Monotonic clock
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions
        self._clock = clock

        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Get current failure count."""
        return self._failure_count

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Execute function with circuit breaker protection.

        Raises:
            CircuitBreakerError: If circuit is open
            Exception: Original exception from function
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._set_state(CircuitState.HALF_OPEN)
                else:
                    raise CircuitBreakerError(
                        f"Circuit breaker '{self.name}' is OPEN. "
                        f"Failures: {self._failure_count}/{self.failure_threshold}. "
                        f"Retry after {self.recovery_timeout}s."
                    )

        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    async def _on_success(self) -> None:
        async with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            if self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED)

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if (
                self._state == CircuitState.HALF_OPEN
                or self._failure_count >= self.failure_threshold
            ):
                self._set_state(CircuitState.OPEN)

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return False

        return (self._clock() - self._last_failure_time) >= self.recovery_timeout

    def _set_state(self, state: CircuitState) -> None:
        self._state = state
        metrics.circuit_breaker_state.labels(service=self.name).set(
            _STATE_GAUGE[state.value]
        )

    async def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        async with self._lock:
            self._failure_count = 0
            self._last_failure_time = None
            self._set_state(CircuitState.CLOSED)

    def get_stats(self) -> dict:
        """Circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self._last_failure_time,
            "recovery_timeout": self.recovery_timeout,
        }
