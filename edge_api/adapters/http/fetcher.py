"""Outbound HTTP with a hard per-attempt deadline and bounded retries.

Only transport-level failures (timeouts, refused connections, DNS errors)
are retried. Any HTTP response, including 4xx/5xx, is returned to the
caller as-is: deciding what a status means is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

import httpx

from edge_api.core.errors import UpstreamTimeoutError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

AttemptOutcome = Literal["response", "timeout", "transport_error"]


@dataclass(frozen=True)
class FetchAttempt:
    """Diagnostics for a single attempt. Not persisted."""

    attempt_number: int
    host: str
    deadline_seconds: float
    outcome: AttemptOutcome
    elapsed_ms: float
    status_code: int | None = None
    error: str | None = None


AttemptObserver = Callable[[FetchAttempt], None]


class TimeoutFetcher:
    """Wrapper around a shared ``httpx.AsyncClient``.

    Attributes:
        backoff_base_seconds: Sleep ``backoff_base_seconds * n`` before retry n.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        backoff_base_seconds: float = 0.2,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
        observer: AttemptObserver | None = None,
    ) -> None:
        self._client = client
        self.backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep
        self._clock = clock
        self._observer = observer

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        timeout_seconds: float,
        max_retries: int = 0,
        **options: Any,
    ) -> httpx.Response:
        """Send a request, retrying on timeout/transport failure.

        Args:
            url: Absolute URL.
            method: HTTP method.
            timeout_seconds: Hard deadline for each attempt.
            max_retries: Additional attempts after the first one.
            **options: Passed through to ``httpx.AsyncClient.request``.

        Returns:
            The first response received, whatever its status.

        Raises:
            UpstreamTimeoutError: The final attempt hit its deadline.
            UpstreamUnavailableError: The final attempt failed at transport level.
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        host = httpx.URL(url).host
        total_attempts = max_retries + 1

        for attempt_number in range(1, total_attempts + 1):
            started = self._clock()
            try:
                response = await asyncio.wait_for(
                    self._client.request(method, url, timeout=timeout_seconds, **options),
                    timeout=timeout_seconds,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                self._report(
                    attempt_number, host, timeout_seconds, started,
                    outcome="timeout", error=type(exc).__name__,
                )
                if attempt_number == total_attempts:
                    raise UpstreamTimeoutError(
                        code="upstream_timeout",
                        message="Upstream request timed out.",
                        details={"host": host, "attempts": attempt_number},
                    ) from exc
            except httpx.TransportError as exc:
                self._report(
                    attempt_number, host, timeout_seconds, started,
                    outcome="transport_error", error=type(exc).__name__,
                )
                if attempt_number == total_attempts:
                    raise UpstreamUnavailableError(
                        code="upstream_unavailable",
                        message="Could not reach upstream service.",
                        details={"host": host, "attempts": attempt_number},
                    ) from exc
            else:
                self._report(
                    attempt_number, host, timeout_seconds, started,
                    outcome="response", status_code=response.status_code,
                )
                return response

            await self._sleep(self.backoff_base_seconds * attempt_number)

        # Unreachable: the loop either returns or raises on the last attempt.
        raise AssertionError("retry loop exited without a result")

    def _report(
        self,
        attempt_number: int,
        host: str,
        deadline: float,
        started: float,
        *,
        outcome: AttemptOutcome,
        status_code: int | None = None,
        error: str | None = None,
    ) -> None:
        attempt = FetchAttempt(
            attempt_number=attempt_number,
            host=host,
            deadline_seconds=deadline,
            outcome=outcome,
            elapsed_ms=round((self._clock() - started) * 1000, 2),
            status_code=status_code,
            error=error,
        )
        log = logger.info if outcome == "response" else logger.warning
        log(
            "upstream.fetch",
            extra={
                "host": attempt.host,
                "attempt": attempt.attempt_number,
                "outcome": attempt.outcome,
                "status_code": attempt.status_code,
                "error_type": attempt.error,
                "elapsed_ms": attempt.elapsed_ms,
            },
        )
        if self._observer is not None:
            self._observer(attempt)
