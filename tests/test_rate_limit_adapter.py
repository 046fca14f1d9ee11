"""Unit tests for in-memory rate limiter adapter."""

import threading
from unittest.mock import Mock

import pytest

from edge_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter


def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)

    assert limiter.consume("k", limit=3, window_seconds=60).allowed is True
    assert limiter.consume("k", limit=3, window_seconds=60).allowed is True
    result = limiter.consume("k", limit=3, window_seconds=60)
    assert result.allowed is True
    assert result.remaining == 0
    assert result.reset_at == 1060.0


def test_blocks_when_over_limit() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)

    assert limiter.consume("k", limit=2, window_seconds=60).allowed is True
    assert limiter.consume("k", limit=2, window_seconds=60).allowed is True

    blocked = limiter.consume("k", limit=2, window_seconds=60)
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 60


def test_retry_after_rounds_up_and_is_at_least_one() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)
    limiter.consume("k", limit=1, window_seconds=10)

    clock.return_value = 1002.4
    assert limiter.consume("k", limit=1, window_seconds=10).retry_after_seconds == 8

    clock.return_value = 1009.99
    assert limiter.consume("k", limit=1, window_seconds=10).retry_after_seconds == 1


def test_resets_on_new_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)

    assert limiter.consume("k", limit=1, window_seconds=10).allowed is True
    assert limiter.consume("k", limit=1, window_seconds=10).allowed is False

    clock.return_value = 1010.0
    fresh = limiter.consume("k", limit=1, window_seconds=10)
    assert fresh.allowed is True
    assert fresh.reset_at == 1020.0


def test_waiting_retry_after_is_enough() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)
    limiter.consume("k", limit=1, window_seconds=300)

    clock.return_value = 1000.5
    blocked = limiter.consume("k", limit=1, window_seconds=300)
    assert blocked.allowed is False

    clock.return_value = 1000.5 + blocked.retry_after_seconds
    assert limiter.consume("k", limit=1, window_seconds=300).allowed is True


def test_window_is_anchored_to_first_request_not_wall_clock() -> None:
    clock = Mock(return_value=1007.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)

    assert limiter.consume("k", limit=1, window_seconds=10).reset_at == 1017.0


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)

    assert limiter.consume("k1", limit=1, window_seconds=60).allowed is True
    assert limiter.consume("k1", limit=1, window_seconds=60).allowed is False

    assert limiter.consume("k2", limit=1, window_seconds=60).allowed is True
    assert len(limiter) == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_consume_args(kwargs: dict) -> None:
    limiter = InMemoryFixedWindowRateLimiter()

    with pytest.raises(ValueError):
        limiter.consume("k", **kwargs)


def test_empty_key_is_rejected() -> None:
    limiter = InMemoryFixedWindowRateLimiter()

    with pytest.raises(ValueError):
        limiter.consume("", limit=1, window_seconds=60)


def test_concurrent_requests_admit_exactly_limit() -> None:
    limit = 25
    limiter = InMemoryFixedWindowRateLimiter()
    barrier = threading.Barrier(limit * 2)
    outcomes: list[bool] = []
    outcomes_lock = threading.Lock()

    def _request() -> None:
        barrier.wait()
        allowed = limiter.consume("client", limit=limit, window_seconds=60).allowed
        with outcomes_lock:
            outcomes.append(allowed)

    threads = [threading.Thread(target=_request) for _ in range(limit * 2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count(True) == limit
    assert outcomes.count(False) == limit
