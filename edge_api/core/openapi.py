"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- The shared error body schema
- 429 responses on every rate-limited operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from edge_api.schemas.forms import ErrorResponse

LIVENESS_PATH = "/health"

_ERROR_REF = {"$ref": "#/components/schemas/ErrorResponse"}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and error docs.

    - Adds tags metadata if not present
    - Registers ``ErrorResponse`` under components.schemas
    - Documents 400/429/502 on every operation except the liveness probe
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        components = schema.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        schemas.setdefault("ErrorResponse", ErrorResponse.model_json_schema(by_alias=True))

        # Tags metadata
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Geo",
                "description": "Geoapify geocoding and places lookups (cached).",
            },
            {
                "name": "Forms",
                "description": "Contact, itinerary and newsletter submissions (Turnstile protected).",
            },
            {
                "name": "Health",
                "description": "Liveness and configuration diagnostics.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, methods in paths.items():
            if path == LIVENESS_PATH:
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                responses = method_obj.setdefault("responses", {})
                responses.setdefault(
                    "400",
                    {"description": "Invalid input", "content": {"application/json": {"schema": _ERROR_REF}}},
                )
                responses.setdefault(
                    "429",
                    {
                        "description": "Rate limit exceeded; see the Retry-After header",
                        "content": {"application/json": {"schema": _ERROR_REF}},
                    },
                )
                responses.setdefault(
                    "502",
                    {"description": "Upstream failure", "content": {"application/json": {"schema": _ERROR_REF}}},
                )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
