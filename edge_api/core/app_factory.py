from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, runtime state, middleware, handlers,
routers) so tests can build isolated apps with their own settings and
transports.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from edge_api.api.routes import forms_router, geo_router, health_router
from edge_api.core.config import Settings, settings as default_settings
from edge_api.core.exception_handlers import setup_exception_handlers
from edge_api.core.logging import configure_logging
from edge_api.core.middleware import request_id_middleware
from edge_api.core.openapi import apply_openapi_customizations
from edge_api.core.runtime import Runtime


def create_app(settings: Settings | None = None, runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to run with; the module-level settings by default.
        runtime: Prebuilt runtime (tests inject fake transports and clocks).

    Returns:
        Configured FastAPI app with runtime state, middleware, handlers,
        routers and docs.
    """
    settings = settings or default_settings
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    runtime = runtime or Runtime(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.runtime.aclose()

    app = FastAPI(
        title="Travel Edge API",
        description=(
            "Server-side edge for a travel website: Geoapify geocoding and "
            "places lookups behind a shared cache, and contact, itinerary and "
            "newsletter forms protected by Turnstile verification. Every "
            "endpoint is rate limited per client IP."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        debug=settings.app.debug,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(geo_router)
    app.include_router(forms_router)
    app.include_router(health_router)

    # OpenAPI customizations (tags, shared error responses)
    apply_openapi_customizations(app)

    return app
