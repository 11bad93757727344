# src/due_lens/api/rate_limiter.py

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """
    Sliding-window limiter: at most `max_requests` admissions in any trailing
    `window_seconds` interval.

    Single event loop only. There is no await between the window check and the
    append, so concurrent admit() callers on one loop cannot overshoot the cap.
    """

    def __init__(
            self,
            max_requests: int,
            window_seconds: float,
            *,
            clock: Clock = time.monotonic,
            sleep: Sleep = asyncio.sleep,
    ) -> None:
        if int(max_requests) < 1:
            raise ValueError("max_requests must be at least 1")
        if not float(window_seconds) > 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = int(max_requests)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._sleep = sleep
        self._admitted: deque[float] = deque()

    def _evict(self, now: float) -> None:
        while self._admitted and now - self._admitted[0] >= self.window_seconds:
            self._admitted.popleft()

    def in_window(self) -> int:
        """Number of admissions still inside the current window."""
        self._evict(self._clock())
        return len(self._admitted)

    async def admit(self) -> None:
        """Suspend until a request may be issued, then record it."""
        while True:
            now = self._clock()
            self._evict(now)

            if len(self._admitted) < self.max_requests:
                self._admitted.append(now)
                return

            wait_s = self._admitted[0] + self.window_seconds - now
            logger.info("Rate limit reached. Waiting %d seconds...", math.ceil(wait_s))
            await self._sleep(max(wait_s, 0.0))
