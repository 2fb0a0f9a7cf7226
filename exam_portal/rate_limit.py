"""
rate_limit.py — Login throttling
================================
Two layers guard the login endpoints:

* ``limiter`` — slowapi per-IP request throttle applied as a route
  decorator. Caps raw request volume regardless of outcome.
* ``login_attempts`` — counts *failed* credential checks per client and
  locks the client out once too many land inside the trailing window.
  A successful login clears the client's history.

The attempt log is process-local and starts empty on every restart.
"""
from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, List

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings
from .errors import RateLimitedError

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


class LoginAttemptLimiter:
    """Sliding-window lockout keyed by client identity."""

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: Dict[str, List[float]] = {}
        self._lock = Lock()

    def _prune(self, key: str, now: float) -> List[float]:
        recent = [t for t in self._attempts.get(key, []) if now - t < self.window_seconds]
        if recent:
            self._attempts[key] = recent
        else:
            self._attempts.pop(key, None)
        return recent

    def check(self, key: str) -> None:
        """Raise RateLimitedError if ``key`` is locked out. Does not record."""
        with self._lock:
            now = self._clock()
            recent = self._prune(key, now)
            if len(recent) >= self.max_attempts:
                oldest = min(recent)
                raise RateLimitedError(self.window_seconds - (now - oldest))

    def _sweep(self, now: float) -> None:
        for key in list(self._attempts):
            self._prune(key, now)

    def record_attempt(self, key: str) -> None:
        """Record a failure and drop clients whose window has fully expired."""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._attempts.setdefault(key, []).append(now)

    def clear_attempts(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def attempts(self, key: str) -> int:
        with self._lock:
            return len(self._prune(key, self._clock()))

    def tracked_keys(self) -> int:
        """Number of clients with failures still held in memory."""
        with self._lock:
            return len(self._attempts)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


login_attempts = LoginAttemptLimiter(
    max_attempts=settings.login_max_attempts,
    window_seconds=settings.login_window_minutes * 60,
)
