"""Points of interest around a coordinate, through Geoapify Places."""

from __future__ import annotations

import logging
from typing import Any

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.core.config import GeoapifySettings
from edge_api.core.errors import UpstreamRejectedError
from edge_api.schemas.geo import Place, PlacesResult
from edge_api.services.geocode_service import parse_upstream_json, require_geoapify_key
from edge_api.services.validation import PlacesQuery
from edge_api.utils.ttl_cache import TTLCache, build_cache_key

logger = logging.getLogger(__name__)


def places_cache_key(query: PlacesQuery) -> str:
    """Coordinates are rounded to 5 decimals (~1 m) and categories sorted."""
    return build_cache_key(
        "places",
        f"{query.lat:.5f},{query.lon:.5f}",
        query.radius_meters,
        query.limit,
        ",".join(sorted(query.categories)),
    )


def normalize_places(data: dict[str, Any]) -> list[Place]:
    """Convert a GeoJSON FeatureCollection into Place models.

    Features without coordinates or without any usable name are dropped;
    the remaining ones keep upstream order.
    """
    features = data.get("features")
    if not isinstance(features, list):
        return []

    places: list[Place] = []
    for feature in features:
        if not isinstance(feature, dict):
            continue
        coords = (feature.get("geometry") or {}).get("coordinates")
        if not isinstance(coords, list) or len(coords) < 2:
            continue
        lon, lat = coords[0], coords[1]
        if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
            continue

        props = feature.get("properties") or {}
        formatted = str(props.get("formatted") or "").strip()
        name = str(props.get("name") or formatted).strip()
        if not name:
            continue

        place_id = str(props.get("place_id") or f"{lat},{lon},{name}").strip()
        categories = props.get("categories")
        places.append(
            Place(
                id=place_id,
                name=name,
                formatted_address=formatted,
                categories=[str(c) for c in categories] if isinstance(categories, list) else [],
                lat=lat,
                lon=lon,
            )
        )
    return places


class PlacesService:
    def __init__(
        self,
        fetcher: TimeoutFetcher,
        cache: TTLCache[Any],
        settings: GeoapifySettings,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self._settings = settings

    async def search(self, query: PlacesQuery) -> PlacesResult:
        key = places_cache_key(query)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        api_key = require_geoapify_key(self._settings)
        categories = ",".join(query.categories)
        response = await self.fetcher.fetch(
            f"{self._settings.base_url.rstrip('/')}/v2/places",
            timeout_seconds=self._settings.timeout_seconds,
            max_retries=self._settings.max_retries,
            params={
                "categories": categories,
                "filter": f"circle:{query.lon},{query.lat},{query.radius_meters}",
                "bias": f"proximity:{query.lon},{query.lat}",
                "limit": str(query.limit),
                "apiKey": api_key,
            },
        )

        if not response.is_success:
            if response.status_code == 401:
                logger.error(
                    "places.upstream_unauthorized",
                    extra={"hint": "Set GEOAPIFY_API_KEY (server env) with a valid Geoapify key."},
                )
                message = "Geoapify places failed (401). Check GEOAPIFY_API_KEY on the server."
            else:
                logger.warning("places.upstream_error", extra={"upstream_status": response.status_code})
                message = f"Geoapify places failed ({response.status_code})."
            raise UpstreamRejectedError(
                code="upstream_rejected",
                message=message,
                details={"upstream_status": response.status_code},
            )

        data = parse_upstream_json(response, host="api.geoapify.com")
        result = PlacesResult(places=normalize_places(data), used_categories=list(query.categories))
        self.cache.set(key, result, self._settings.places_cache_ttl_seconds)
        logger.info("places.fetched", extra={"count": len(result.places)})
        return result
