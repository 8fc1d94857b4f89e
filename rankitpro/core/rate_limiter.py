from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable

DEFAULT_LIMIT = 100
DEFAULT_WINDOW_SECONDS = 900


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int


@dataclass
class _Window:
    started_at: float
    count: int


class RateLimiterService(ABC):
    @abstractmethod
    def check(self, *, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""


class FixedWindowRateLimiter(RateLimiterService):
    """Fixed-window counter per key (client IP).

    In-memory only; a shared store would be needed behind more than one worker.
    """

    def __init__(
        self,
        *,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    def check(self, *, key: str) -> RateLimitDecision:
        now = self._clock()

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(started_at=now, count=0)
                self._windows[key] = window

            if window.count >= self.limit:
                retry_after = max(1, int(self.window_seconds - (now - window.started_at)))
                return RateLimitDecision(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    retry_after_seconds=retry_after,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=max(0, self.limit - window.count),
                retry_after_seconds=0,
            )

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now - window.started_at >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
