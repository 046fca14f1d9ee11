"""HTTP middleware for request ID propagation and access logging.

The middleware:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars so every log line of the request carries it
- Injects request_id and the total duration into response headers
- Emits one ``request.completed`` log line per request (client address hashed)
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from edge_api.core.client_identity import get_client_ip, hash_client_key
from edge_api.core.config import settings
from edge_api.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("edge_api.access")

# Upper bound on client-supplied ids so they cannot bloat every log line
MAX_REQUEST_ID_LENGTH = 128


async def request_id_middleware(request: Request, call_next) -> Response:
    """Correlate one request/response pair across logs and headers.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.

    Example:
        >>> # Request arrives with {"X-Request-ID": "req-abc-123"}
        >>> # Response includes:
        >>> # {"X-Request-ID": "req-abc-123", "X-Request-Duration-ms": "45.67"}
    """

    header_name = settings.log.request_id_header
    incoming = (request.headers.get(header_name) or "").strip()
    request_id = incoming[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    status_code = 500
    try:
        response: Response = await call_next(request)
        status_code = response.status_code
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "client_hash": hash_client_key(get_client_ip(request.headers)),
            },
        )
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
