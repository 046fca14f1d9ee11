from __future__ import annotations

from edge_api.api.routes.forms import router as forms_router
from edge_api.api.routes.geo import router as geo_router
from edge_api.api.routes.health import router as health_router

__all__ = ["forms_router", "geo_router", "health_router"]
