# backend/rate_limiter.py
import threading
import time
from dataclasses import dataclass

from loguru import logger


@dataclass
class RateLimitStatus:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window request quota per caller identity (an IP address, usually).
    The app builds one at startup, sweeps it periodically and hands it to the
    enrichment question source.
    """

    def __init__(self, max_requests: int = 50, window_seconds: int = 3600, clock=time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateLimitStatus:
        """Count one request for `identifier` and report whether it is allowed."""
        now = self._clock()
        if self.max_requests <= 0:
            return RateLimitStatus(False, 0, now + self.window_seconds)
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or now > window.reset_at:
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[identifier] = window
                return RateLimitStatus(True, max(0, self.max_requests - 1), window.reset_at)

            if window.count >= self.max_requests:
                return RateLimitStatus(False, 0, window.reset_at)

            window.count += 1
            return RateLimitStatus(True, max(0, self.max_requests - window.count), window.reset_at)

    def remaining(self, identifier: str) -> int:
        now = self._clock()
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or now > window.reset_at:
                return max(0, self.max_requests)
            return max(0, self.max_requests - window.count)

    def sweep(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w.reset_at]
            for k in expired:
                del self._windows[k]
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired entries")
        return len(expired)

    def config(self) -> dict:
        return {"window_seconds": self.window_seconds, "max_requests": self.max_requests}

    def __len__(self) -> int:
        return len(self._windows)
