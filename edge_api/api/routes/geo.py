from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from edge_api.api.deps import get_runtime
from edge_api.core.runtime import Runtime
from edge_api.schemas.geo import GeocodeResult, PlacesResult
from edge_api.services.pipeline import EndpointPolicy, RequestContext
from edge_api.services.validation import PlacesQuery, validate_geocode_query, validate_places_query

router = APIRouter(prefix="/api/geoapify", tags=["Geo"])


@router.api_route("/geocode", methods=["GET", "POST"], response_model=GeocodeResult)
async def geocode(request: Request, runtime: Runtime = Depends(get_runtime)) -> JSONResponse:
    """Geocode free text (``text`` query param or JSON body field).

    Returns the best match as ``{lat, lon, formattedAddress}``; 404 when the
    upstream has no match. Results are cached for 24 hours per lower-cased text.
    """
    limits = runtime.settings.rate_limit
    policy = EndpointPolicy(
        bucket="geoapify:geocode",
        limit=limits.geocode_requests,
        window_seconds=limits.geocode_window_seconds,
        cache_control=runtime.settings.app.lookup_cache_control,
    )

    async def handle(ctx: RequestContext[str]) -> GeocodeResult:
        return await runtime.geocode.geocode(ctx.record)

    result = await runtime.pipeline.run(request, policy, handle, validator=validate_geocode_query)
    return result.to_response()


@router.api_route("/places", methods=["GET", "POST"], response_model=PlacesResult)
async def places(request: Request, runtime: Runtime = Depends(get_runtime)) -> JSONResponse:
    """Points of interest around ``lat``/``lon``.

    Optional: ``radiusMeters``, ``limit``, ``categories`` (explicit Geoapify
    categories) or ``interestTags`` (mapped to categories). Results are
    cached for 30 minutes per rounded coordinate and category set.
    """
    limits = runtime.settings.rate_limit
    geo = runtime.settings.geoapify
    policy = EndpointPolicy(
        bucket="geoapify:places",
        limit=limits.places_requests,
        window_seconds=limits.places_window_seconds,
        cache_control=runtime.settings.app.lookup_cache_control,
    )

    def validate(params: dict) -> PlacesQuery:
        return validate_places_query(
            params,
            default_radius_meters=geo.default_radius_meters,
            default_limit=geo.default_limit,
        )

    async def handle(ctx: RequestContext[PlacesQuery]) -> PlacesResult:
        return await runtime.places.search(ctx.record)

    result = await runtime.pipeline.run(request, policy, handle, validator=validate)
    return result.to_response()
