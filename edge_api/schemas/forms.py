"""Pydantic schemas for form submission and error responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FormAck(BaseModel):
    """Acknowledgment returned once a submission has been stored."""

    ok: bool = True
    duplicate: bool | None = Field(
        default=None,
        description="Set when the record already existed (idempotent writes only).",
    )


class ErrorResponse(BaseModel):
    """Shape of every error body."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(..., description="Human-readable message.")
    code: str = Field(..., description="Stable, machine-readable error code.")
    request_id: str | None = None
    retry_after_seconds: int | None = Field(
        default=None,
        alias="retryAfterSeconds",
        description="Only on 429: seconds until the client may retry.",
    )
