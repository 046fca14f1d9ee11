"""Process-wide runtime state, owned by the FastAPI app.

One Runtime instance lives on ``app.state.runtime``. It owns the shared
HTTP client, the TTL cache and the rate-limit windows, and wires the
services on top of them. Nothing here is persisted: state is lost on
restart and is not shared between instances of the service.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from edge_api.adapters.store.base import AbstractRecordStore
from edge_api.adapters.store.factory import create_record_store
from edge_api.adapters.verification.base import AbstractVerifier
from edge_api.adapters.verification.factory import create_verifier
from edge_api.core.config import Settings
from edge_api.services.forms_service import FormsService
from edge_api.services.geocode_service import GeocodeService
from edge_api.services.health_service import HealthService
from edge_api.services.pipeline import RequestPipeline
from edge_api.services.places_service import PlacesService
from edge_api.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class Runtime:
    """State container for one process.

    Args:
        settings: Resolved settings.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        clock: Monotonic clock shared by the cache and the rate limiter.
        sleep: Sleep used between fetch retries.
        store: Backing store override; built from settings on first use otherwise.
        verifier: Verifier override; built from settings on first use otherwise.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        store: AbstractRecordStore | None = None,
        verifier: AbstractVerifier | None = None,
    ) -> None:
        self.settings = settings
        self.http_client = httpx.AsyncClient(transport=transport)
        self.fetcher = TimeoutFetcher(
            self.http_client,
            backoff_base_seconds=settings.geoapify.backoff_base_seconds,
            sleep=sleep,
        )
        self.cache: TTLCache[Any] = TTLCache(clock=clock)
        self.limiter = InMemoryFixedWindowRateLimiter(clock=clock)

        self._store = store
        self._verifier = verifier
        self._verifier_resolved = verifier is not None

        self.geocode = GeocodeService(self.fetcher, self.cache, settings.geoapify)
        self.places = PlacesService(self.fetcher, self.cache, settings.geoapify)
        self.forms = FormsService(self.get_store)
        self.health = HealthService(settings, self.fetcher)
        self.pipeline = RequestPipeline(
            limiter=self.limiter,
            verifier_provider=self.get_verifier,
            rate_limit_settings=settings.rate_limit,
        )

    def get_verifier(self) -> AbstractVerifier | None:
        """Return the verifier, building it on first use.

        Raises:
            ConfigurationAppError: Secret missing in an enforced environment.
        """
        if not self._verifier_resolved:
            self._verifier = create_verifier(self.settings, self.fetcher)
            self._verifier_resolved = True
        return self._verifier

    def get_store(self) -> AbstractRecordStore:
        """Return the backing store, building it on first use.

        Raises:
            ConfigurationAppError: Supabase is not configured.
        """
        if self._store is None:
            self._store = create_record_store(self.settings, self.fetcher)
        return self._store

    async def aclose(self) -> None:
        await self.http_client.aclose()
        logger.info("runtime.closed", extra={"cache": self.cache.stats(), "rate_windows": len(self.limiter)})
