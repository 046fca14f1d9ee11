from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from edge_api.api.deps import get_runtime
from edge_api.core.runtime import Runtime
from edge_api.services.pipeline import EndpointPolicy, RequestContext

router = APIRouter(tags=["Health"])

HEALTH_SECRET_HEADER = "X-Health-Check"


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/api/health")
async def diagnostics(request: Request, runtime: Runtime = Depends(get_runtime)) -> JSONResponse:
    """Configuration diagnostics.

    Reports which upstream secrets are set and the client IP as the server
    sees it. With ``runTests=true`` and a matching ``X-Health-Check`` header,
    also probes Turnstile and Geoapify once each.
    """
    limits = runtime.settings.rate_limit
    policy = EndpointPolicy(
        bucket="health",
        limit=limits.health_requests,
        window_seconds=limits.health_window_seconds,
    )

    async def handle(ctx: RequestContext[dict[str, Any]]) -> dict[str, Any]:
        run_tests = str(ctx.request.query_params.get("runTests") or "false").lower() == "true"
        return await runtime.health.report(
            client_ip=ctx.client_ip,
            run_tests=run_tests,
            provided_secret=ctx.request.headers.get(HEALTH_SECRET_HEADER),
        )

    result = await runtime.pipeline.run(request, policy, handle)
    return result.to_response()
