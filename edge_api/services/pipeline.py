"""Request pipeline shared by every upstream-fronting endpoint.

Stages run in a fixed order and the first failure ends the request:

    rate limit -> body parse -> field validation -> human verification
    -> handler (cache/upstream lookup, or persistence)

The HTTP method is checked earlier by the router, so a wrong method never
costs rate-limit budget. Stages after the rate limit only run once it has
admitted the request, and a handler only writes to the cache after the
upstream call succeeded, so a failing stage leaves no partial side effects.

Errors are returned as values inside PipelineResult; only unexpected
exceptions escape to the global handler.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from edge_api.adapters.rate_limit.base import AbstractRateLimiter
from edge_api.adapters.verification.base import AbstractVerifier
from edge_api.core.client_identity import get_client_ip, hash_client_key
from edge_api.core.config import RateLimitSettings
from edge_api.core.errors import AppError, RateLimitAppError, VerificationAppError
from edge_api.core.exception_handlers import render_error

logger = logging.getLogger(__name__)

R = TypeVar("R")

TOKEN_FIELD = "turnstileToken"


@dataclass(frozen=True)
class EndpointPolicy:
    """Per-endpoint pipeline configuration.

    Attributes:
        bucket: Rate-limit namespace, e.g. ``"forms:contact"``.
        limit: Admitted requests per window and client.
        window_seconds: Window length.
        verify_action: Expected verification action; None skips the human check.
        cache_control: Cache-Control header for successful responses.
    """

    bucket: str
    limit: int
    window_seconds: int
    verify_action: str | None = None
    cache_control: str = "no-store"


@dataclass
class RequestContext(Generic[R]):
    """What a handler gets once every earlier stage has passed."""

    request: Request
    client_ip: str
    params: dict[str, Any]
    record: R


@dataclass
class PipelineResult:
    """Final outcome of a request: a payload or an error, never both."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: Any, *, cache_control: str) -> "PipelineResult":
        if isinstance(payload, BaseModel):
            body = payload.model_dump(by_alias=True, exclude_none=True)
        else:
            body = dict(payload)
        return cls(status_code=200, body=body, headers={"Cache-Control": cache_control})

    @classmethod
    def failure(cls, error: AppError, *, include_rate_limit_headers: bool = True) -> "PipelineResult":
        status_code, body, headers = render_error(
            error, include_rate_limit_headers=include_rate_limit_headers
        )
        return cls(status_code=status_code, body=body, headers=headers, error=error)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body, headers=self.headers)


def parse_json_body(raw: bytes) -> dict[str, Any]:
    """Best-effort JSON object parse.

    Empty, malformed, too deeply nested, non-UTF-8 or non-object bodies all
    yield ``{}``;
    field validation decides what is actually missing.
    """
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return {}
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return {}
    return data if isinstance(data, dict) else {}


def merge_params(query: Mapping[str, str], body: Mapping[str, Any]) -> dict[str, Any]:
    """Body fields overlaid with non-empty query-string values."""
    merged = dict(body)
    for key, value in query.items():
        if value != "":
            merged[key] = value
    return merged


class RequestPipeline:
    """Runs the shared stages around an endpoint-specific handler.

    Attributes:
        limiter: Process-wide rate limiter.
    """

    def __init__(
        self,
        *,
        limiter: AbstractRateLimiter,
        verifier_provider: Callable[[], AbstractVerifier | None],
        rate_limit_settings: RateLimitSettings,
    ) -> None:
        self.limiter = limiter
        self._verifier_provider = verifier_provider
        self._rate_limit_settings = rate_limit_settings

    async def run(
        self,
        request: Request,
        policy: EndpointPolicy,
        handler: Callable[[RequestContext[R]], Awaitable[Any]],
        *,
        validator: Callable[[dict[str, Any]], R] | None = None,
    ) -> PipelineResult:
        client_ip = get_client_ip(request.headers)
        try:
            self._enforce_rate_limit(policy, client_ip)
            params = merge_params(request.query_params, parse_json_body(await request.body()))
            record = validator(params) if validator is not None else params
            if policy.verify_action is not None:
                await self._verify_human(params, policy, client_ip)
            payload = await handler(
                RequestContext(request=request, client_ip=client_ip, params=params, record=record)
            )
        except AppError as exc:
            log = logger.error if exc.http_status >= 500 else logger.info
            log(
                "pipeline.rejected",
                extra={
                    "bucket": policy.bucket,
                    "error_code": exc.code,
                    "status_code": exc.http_status,
                },
            )
            return PipelineResult.failure(
                exc, include_rate_limit_headers=self._rate_limit_settings.include_headers
            )

        return PipelineResult.success(payload, cache_control=policy.cache_control)

    def _enforce_rate_limit(self, policy: EndpointPolicy, client_ip: str) -> None:
        if not self._rate_limit_settings.enabled:
            return

        key = f"{policy.bucket}:{client_ip}"
        result = self.limiter.consume(key, limit=policy.limit, window_seconds=policy.window_seconds)
        log_extra = {
            "bucket": policy.bucket,
            "key_hash": hash_client_key(key),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_s": policy.window_seconds,
        }
        if result.allowed:
            logger.debug("rate_limit.allowed", extra=log_extra)
            return

        retry_after = result.retry_after_seconds or 1
        logger.warning("rate_limit.exceeded", extra={**log_extra, "retry_after_s": retry_after})
        raise RateLimitAppError(
            code="rate_limited",
            message="Rate limit exceeded.",
            details={"retry_after": retry_after},
            retry_after_seconds=retry_after,
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )

    async def _verify_human(self, params: dict[str, Any], policy: EndpointPolicy, client_ip: str) -> None:
        verifier = self._verifier_provider()
        if verifier is None:
            return

        token = params.get(TOKEN_FIELD)
        result = await verifier.verify(
            str(token) if token is not None else None,
            policy.verify_action,
            client_ip,
        )
        if result.accepted:
            return

        if "missing-input-response" in result.reason_codes:
            message = "Missing Turnstile token."
        else:
            message = f"Turnstile verification failed ({', '.join(result.reason_codes)})."
        raise VerificationAppError(
            code="verification_failed",
            message=message,
            details={"reason_codes": result.reason_codes},
        )
