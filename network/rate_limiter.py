"""
Minimum-gap rate limiter shared by every outbound request of a NetworkClient.
"""
from __future__ import annotations

import threading
import time
from typing import Callable

from config import RATE_LIMIT_DELAY


class RateLimiter:
    """
    Spaces the *start* of consecutive calls at least `delay` seconds apart.

    The next free slot is reserved under the lock and the caller sleeps
    outside it, so worker threads queue up behind each other without
    holding the lock while waiting. Responses are not serialized.
    """

    def __init__(
        self,
        delay: float = RATE_LIMIT_DELAY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delay = delay
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_start: float | None = None

    def wait(self) -> float:
        """Block until this caller may start. Returns the seconds waited."""
        if self.delay <= 0:
            return 0.0

        with self._lock:
            now = self._clock()
            if self._last_start is None:
                start = now
            else:
                start = max(now, self._last_start + self.delay)
            self._last_start = start

        wait_time = start - now
        if wait_time > 0:
            self._sleep(wait_time)
        return wait_time

    def reset(self) -> None:
        with self._lock:
            self._last_start = None
