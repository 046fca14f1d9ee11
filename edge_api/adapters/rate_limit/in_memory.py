"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Windows are per key and start on the key's first request; they are not
  aligned to wall-clock ticks.
- A window covers [start, start + window_seconds): a client that waits the
  advertised retry-after is always admitted.
- Window state is never dropped, so memory grows with distinct client keys.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable

from edge_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from edge_api.utils.keyed_lock import KeyedLock


@dataclass
class RateWindow:
    count: int
    reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests in a window that opens on first use.

    The check and the increment for a key happen under that key's lock, so
    two concurrent requests can never both take the last slot.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source function returning seconds.
        """
        self._clock = clock
        self._locks = KeyedLock()
        self._windows: dict[str, RateWindow] = {}

    def consume(self, key: str, *, limit: int, window_seconds: float) -> RateLimitResult:
        """Admit or reject one request for ``key``.

        Args:
            key: Unique identifier for rate limiting.
            limit: Maximum number of admitted requests per window.
            window_seconds: Size of the window in seconds.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key, limit or window_seconds are invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        with self._locks.hold(key):
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now >= window.reset_at:
                window = RateWindow(count=1, reset_at=now + window_seconds)
                self._windows[key] = window
                return self._allowed(limit, window)

            if window.count < limit:
                window.count += 1
                return self._allowed(limit, window)

            retry_after = max(1, math.ceil(window.reset_at - now))
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_at=window.reset_at,
                retry_after_seconds=retry_after,
            )

    @staticmethod
    def _allowed(limit: int, window: RateWindow) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, limit - window.count),
            reset_at=window.reset_at,
            retry_after_seconds=None,
        )

    def __len__(self) -> int:
        return len(self._windows)
