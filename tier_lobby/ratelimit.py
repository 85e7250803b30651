"""Sliding-window limiter for chat sends.

Each key (author id) may perform at most `max_events` actions within any
`window_seconds` span. Timestamps older than the window are discarded
lazily on the next check.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Callable

from tier_lobby.errors import RateLimited


class SendRateLimiter:
    def __init__(
        self,
        max_events: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_events < 1 or window_seconds <= 0:
            raise ValueError("max_events must be >= 1 and window_seconds > 0")
        self.max_events = max_events
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def _expire(self, window: deque[float], now: float) -> None:
        while window and window[0] <= now - self.window_seconds:
            window.popleft()

    def hit(self, key: str) -> None:
        """Record one action for `key`, or raise RateLimited without recording it."""
        now = self._clock()
        with self._lock:
            window = self._windows[key]
            self._expire(window, now)
            if len(window) >= self.max_events:
                retry_after = window[0] + self.window_seconds - now
                raise RateLimited(
                    f"At most {self.max_events} messages per {self.window_seconds:g}s",
                    retry_after=max(retry_after, 0.0),
                )
            window.append(now)

    def remaining(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            window = self._windows[key]
            self._expire(window, now)
            return self.max_events - len(window)
