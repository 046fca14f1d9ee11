"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Every error is a value first: it carries a stable code, a human message and
the HTTP status it maps to. The request pipeline returns errors inside a
PipelineResult instead of letting them escape; the global exception handlers
render any error that is raised outside the pipeline the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    host: str
    http_status: int
    upstream_status: int
    attempts: int
    retry_after: int
    reason_codes: list[str]
    setting: str
    table: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    http_status: ClassVar[int] = 500

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request fields fail validation (first violation wins)."""

    http_status = 400


class NotFoundAppError(AppError):
    """Raised when an upstream answered successfully but had no result."""

    http_status = 404


class VerificationAppError(AppError):
    """Raised when the human check failed or the token is missing/invalid."""

    http_status = 403


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeded its request budget."""

    retry_after_seconds: int = 1
    limit: int | None = None
    remaining: int = 0
    reset_at: float | None = None

    http_status = 429


class UpstreamTimeoutError(AppError):
    """Upstream did not answer within the deadline after exhausting retries."""

    http_status = 504


class UpstreamUnavailableError(AppError):
    """Upstream could not be reached at all after exhausting retries."""

    http_status = 502


class UpstreamRejectedError(AppError):
    """Upstream answered with a non-success HTTP status."""

    http_status = 502


class PersistenceAppError(AppError):
    """Backing-store write failed."""

    http_status = 500


class ConfigurationAppError(AppError):
    """A required secret or key is absent when an operation needs it."""

    http_status = 500
