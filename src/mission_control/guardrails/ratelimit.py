"""Sliding-window rate limiter keyed by operation."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable

from mission_control.guardrails.audit import AuditLog

WINDOW_SECONDS = 60.0


class RateLimiter:
    """Per-key trailing-window call budget.

    Windows are independent per key and pruned lazily on each check; a denied
    call does not consume budget.
    """

    def __init__(
        self,
        audit: AuditLog | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        window_seconds: float = WINDOW_SECONDS,
    ) -> None:
        self._audit = audit
        self._clock = clock
        self._window_seconds = window_seconds
        self._windows: dict[str, deque[float]] = {}

    def _prune(self, key: str, now: float) -> deque[float]:
        timestamps = self._windows.setdefault(key, deque())
        window_start = now - self._window_seconds
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()
        return timestamps

    def check(self, key: str, max_per_minute: int = 60) -> bool:
        try:
            now = self._clock()
            timestamps = self._prune(key, now)
            if len(timestamps) >= max_per_minute:
                if self._audit is not None:
                    self._audit.security(
                        "RATE_LIMIT_EXCEEDED", operation=key, count=len(timestamps)
                    )
                return False
            timestamps.append(now)
            return True
        except Exception:
            if self._audit is not None:
                self._audit.security("RATE_LIMIT_CHECK_ERROR", operation=key)
            return False

    def count(self, key: str) -> int:
        return len(self._prune(key, self._clock()))

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)
