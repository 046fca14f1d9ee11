"""Free-text geocoding through Geoapify, cached per normalized query."""

from __future__ import annotations

import logging
from typing import Any

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.core.config import GeoapifySettings
from edge_api.core.errors import (
    ConfigurationAppError,
    NotFoundAppError,
    UpstreamRejectedError,
)
from edge_api.schemas.geo import GeocodeResult
from edge_api.utils.ttl_cache import TTLCache, build_cache_key

logger = logging.getLogger(__name__)


def require_geoapify_key(settings: GeoapifySettings) -> str:
    """Return the configured Geoapify key.

    Raises:
        ConfigurationAppError: If GEOAPIFY_API_KEY is not set.
    """
    if not settings.api_key:
        logger.error("geoapify.not_configured", extra={"setting": "GEOAPIFY_API_KEY"})
        raise ConfigurationAppError(
            code="geoapify_not_configured",
            message="Missing GEOAPIFY_API_KEY server environment variable.",
            details={"setting": "GEOAPIFY_API_KEY"},
        )
    return settings.api_key


def parse_upstream_json(response: Any, *, host: str) -> dict[str, Any]:
    """Decode a JSON object body, treating anything else as an upstream fault."""
    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamRejectedError(
            code="upstream_invalid_response",
            message="Upstream returned an unreadable response.",
            details={"host": host, "upstream_status": response.status_code},
        ) from exc
    return data if isinstance(data, dict) else {}


def geocode_cache_key(text: str) -> str:
    return build_cache_key("geocode", text.strip().lower())


class GeocodeService:
    """Resolves a place name to a single coordinate.

    Attributes:
        fetcher: Shared outbound HTTP wrapper.
        cache: Process-wide TTL cache shared with other lookups.
    """

    def __init__(
        self,
        fetcher: TimeoutFetcher,
        cache: TTLCache[Any],
        settings: GeoapifySettings,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self._settings = settings

    async def geocode(self, text: str) -> GeocodeResult:
        """Geocode ``text``.

        Raises:
            NotFoundAppError: The upstream answered but had no match.
            UpstreamRejectedError: The upstream answered with an error status.
            UpstreamTimeoutError / UpstreamUnavailableError: Transport failure.
            ConfigurationAppError: No API key configured.
        """
        key = geocode_cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        api_key = require_geoapify_key(self._settings)
        response = await self.fetcher.fetch(
            f"{self._settings.base_url.rstrip('/')}/v1/geocode/search",
            timeout_seconds=self._settings.timeout_seconds,
            max_retries=self._settings.max_retries,
            params={"text": text, "limit": "1", "format": "geojson", "apiKey": api_key},
        )

        if not response.is_success:
            logger.warning("geocode.upstream_error", extra={"upstream_status": response.status_code})
            raise UpstreamRejectedError(
                code="upstream_rejected",
                message=f"Geoapify geocode failed ({response.status_code}).",
                details={"upstream_status": response.status_code},
            )

        data = parse_upstream_json(response, host="api.geoapify.com")
        result = _first_feature(data)
        if result is None:
            logger.info("geocode.no_result")
            raise NotFoundAppError(code="not_found", message="No geocode result found.")

        self.cache.set(key, result, self._settings.geocode_cache_ttl_seconds)
        return result


def _first_feature(data: dict[str, Any]) -> GeocodeResult | None:
    features = data.get("features")
    if not isinstance(features, list) or not features:
        return None
    feature = features[0] if isinstance(features[0], dict) else {}
    coords = (feature.get("geometry") or {}).get("coordinates")
    if not isinstance(coords, list) or len(coords) < 2:
        return None
    lon, lat = coords[0], coords[1]
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return None
    formatted = str((feature.get("properties") or {}).get("formatted") or "")
    return GeocodeResult(lat=lat, lon=lon, formatted_address=formatted)
