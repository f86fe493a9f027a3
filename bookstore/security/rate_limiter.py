"""Sliding window limiter guarding the credential endpoints."""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Protocol


def attempt_key(action: str, email: str) -> str:
    """Limiter key for an attempt at ``action`` on behalf of ``email``."""
    return f"{action}:{email.strip().lower()}"


class RateLimiter(Protocol):
    def allow(self, action: str, email: str) -> bool: ...

    def reset(self, action: str, email: str) -> None: ...


class SlidingWindowRateLimiter:
    """Thread-safe in-process limiter.

    Keys whose attempts have all left the window are dropped, so the map only
    holds emails seen within the last window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._events: dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def allow(self, action: str, email: str) -> bool:
        """Record an attempt and report whether it fits in the window."""
        key = attempt_key(action, email)
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._window:
                self._sweep(now)
            attempts = self._events.get(key)
            if attempts is None:
                attempts = self._events[key] = deque()
            self._trim(attempts, now)
            if len(attempts) >= self._max_requests:
                return False
            attempts.append(now)
            return True

    def reset(self, action: str, email: str) -> None:
        """Forget recorded attempts, e.g. after a successful login."""
        with self._lock:
            self._events.pop(attempt_key(action, email), None)

    def _trim(self, attempts: Deque[float], now: float) -> None:
        while attempts and now - attempts[0] >= self._window:
            attempts.popleft()

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        stale = [
            key
            for key, attempts in self._events.items()
            if not attempts or now - attempts[-1] >= self._window
        ]
        for key in stale:
            del self._events[key]
        self._last_sweep = now
