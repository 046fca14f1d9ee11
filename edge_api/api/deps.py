from __future__ import annotations

from fastapi import Request

from edge_api.core.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    """FastAPI dependency returning the app-owned Runtime."""
    return request.app.state.runtime
