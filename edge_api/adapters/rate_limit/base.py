"""Rate limiter interfaces.

The pipeline depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped later (e.g., Redis) with minimal
changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a check-and-increment operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: Clock time at which the current window ends.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, *, limit: int, window_seconds: float) -> RateLimitResult:
        """Check the budget for ``key`` and count this request if admitted.

        Args:
            key: Unique identifier (bucket + client identity).
            limit: Max admitted requests per window.
            window_seconds: Window length in seconds.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
