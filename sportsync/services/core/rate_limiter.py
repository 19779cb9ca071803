"""
Sliding-window rate limiter for outbound provider calls.

Admits at most ``max_requests`` calls in any rolling ``window_seconds``.
When the window is full the caller sleeps until the oldest admitted call
ages out of the window; exhaustion is backpressure, never an error.

Usage:
    limiter = SlidingWindowRateLimiter(max_requests=100, window_seconds=60, name="highlightly")

    async def fetch():
        await limiter.acquire()
        return await client.get(url)
"""
import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional

from sportsync.core.metrics import record_rate_limit_wait

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    N requests per rolling window, shared by every call to one provider.

    Attributes:
        max_requests: Requests admitted per window
        window_seconds: Window length in seconds
        name: Provider name used in logs and metrics
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_requests: Requests admitted per window (must be positive)
            window_seconds: Window length in seconds (must be positive)
            name: Provider name used in logs and metrics
            clock: Monotonic clock, injectable for tests
            sleep: Async sleep, injectable for tests
        """
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock: Optional[asyncio.Lock] = None

    def _prune(self, now: float) -> None:
        """Drop admissions that have aged out of the window."""
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    @property
    def in_window(self) -> int:
        """Number of admissions inside the current window."""
        self._prune(self._clock())
        return len(self._timestamps)

    async def acquire(self) -> float:
        """
        Wait for a free slot and record the admission.

        Returns:
            Seconds spent waiting (0.0 when a slot was free)
        """
        if self._lock is None:
            self._lock = asyncio.Lock()

        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)

                if len(self._timestamps) < self.max_requests:
                    self._timestamps.append(now)
                    break

                wait_time = self.window_seconds - (now - self._timestamps[0])
                if wait_time <= 0:
                    continue

                logger.info(
                    f"Rate limit reached for {self.name} "
                    f"({self.max_requests}/{self.window_seconds}s), waiting {wait_time:.2f}s"
                )
                await self._sleep(wait_time)
                waited += wait_time

        if waited:
            record_rate_limit_wait(self.name, waited)
        return waited

    def reset(self) -> None:
        """Forget every recorded admission."""
        self._timestamps.clear()
