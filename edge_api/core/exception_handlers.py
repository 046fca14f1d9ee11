"""Global exception handlers for consistent error responses.

This module renders every error as ``{"error": <message>, "code": <code>,
"request_id": <id>}`` with the HTTP status the error kind maps to. The
request pipeline uses the same renderer for the errors it returns as
values, so a client cannot tell which path produced the response.

Design:
- AppError subclasses → their ``http_status`` (400/403/404/429/5xx)
- Starlette HTTP errors (unknown route, wrong method) → same JSON shape
- Unexpected Exception → generic 500 (safety net)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edge_api.core.errors import AppError, RateLimitAppError
from edge_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def render_error(
    exc: AppError,
    *,
    include_rate_limit_headers: bool = True,
) -> tuple[int, dict[str, Any], dict[str, str]]:
    """Build (status, body, headers) for an AppError.

    Rate-limit errors advertise when to retry both in the ``Retry-After``
    header and in ``retryAfterSeconds`` in the body.
    """
    body: dict[str, Any] = {
        "error": exc.message,
        "code": exc.code,
        "request_id": get_request_id(),
    }
    headers = dict(NO_STORE)

    if isinstance(exc, RateLimitAppError):
        body["retryAfterSeconds"] = exc.retry_after_seconds
        headers["Retry-After"] = str(exc.retry_after_seconds)
        if include_rate_limit_headers and exc.limit is not None:
            headers["X-RateLimit-Limit"] = str(exc.limit)
            headers["X-RateLimit-Remaining"] = str(exc.remaining)

    return exc.http_status, body, headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors raised outside the pipeline."""
    status_code, body, headers = render_error(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (404, 405) in the common error shape."""
    message = "Method not allowed." if exc.status_code == 405 else str(exc.detail)
    headers = dict(NO_STORE)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": message,
            "code": f"http_{exc.status_code}",
            "request_id": get_request_id(),
        },
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Server error.",
            "code": "internal_server_error",
            "request_id": get_request_id(),
        },
        headers=NO_STORE,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
