"""
Token bucket rate limiter for outbound indexer calls.

The indexer enforces a per-project request rate; callers await a token
before each request instead of tripping HTTP 429.
"""

import asyncio
import time
from typing import Callable


class TokenBucket:
    """
    Async token bucket.

    - Bucket holds at most ``burst_size`` tokens
    - Tokens refill at ``tokens_per_second``
    - ``acquire`` waits until a token is available
    """

    def __init__(
        self,
        tokens_per_second: float = 8.0,
        burst_size: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        if tokens_per_second <= 0:
            raise ValueError("tokens_per_second must be positive")
        if burst_size < 1:
            raise ValueError("burst_size must be at least 1")

        self.tokens_per_second = tokens_per_second
        self.burst_size = burst_size
        self._clock = clock
        self._tokens = float(burst_size)
        self._last_update = clock()
        self._lock = asyncio.Lock()

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_update
        self._tokens = min(
            self._tokens + elapsed * self.tokens_per_second,
            float(self.burst_size),
        )
        self._last_update = now

    def try_acquire(self) -> bool:
        """Take a token if one is available right now."""
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return True
        return False

    async def acquire(self) -> None:
        """Wait for and take one token."""
        async with self._lock:
            while not self.try_acquire():
                wait = (1.0 - self._tokens) / self.tokens_per_second
                await asyncio.sleep(wait)
