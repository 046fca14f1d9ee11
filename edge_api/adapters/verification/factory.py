"""Factory for the human-verification adapter."""

from __future__ import annotations

import logging

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.adapters.verification.base import AbstractVerifier
from edge_api.adapters.verification.turnstile import TurnstileVerifier, parse_hostnames
from edge_api.core.config import Settings
from edge_api.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


def create_verifier(settings: Settings, fetcher: TimeoutFetcher) -> AbstractVerifier | None:
    """Build the verifier from settings.

    Returns None when no secret is configured outside enforced environments,
    meaning verification is skipped (local development).

    Raises:
        ConfigurationAppError: If the secret is missing where bot protection
            must be on (production, preview, staging).
    """
    secret = settings.turnstile.secret_key
    if not secret:
        if settings.verification_enforced:
            logger.error(
                "verification.not_configured",
                extra={"app_env": settings.app_env, "setting": "TURNSTILE_SECRET_KEY"},
            )
            raise ConfigurationAppError(
                code="verification_not_configured",
                message="Turnstile is not configured on the server (missing TURNSTILE_SECRET_KEY).",
                details={"setting": "TURNSTILE_SECRET_KEY"},
            )
        logger.warning(
            "verification.disabled",
            extra={"app_env": settings.app_env, "reason": "missing_secret"},
        )
        return None

    return TurnstileVerifier(
        fetcher,
        secret_key=secret,
        verify_url=settings.turnstile.verify_url,
        timeout_seconds=settings.turnstile.timeout_seconds,
        expected_hostnames=parse_hostnames(settings.turnstile.expected_hostnames),
    )
