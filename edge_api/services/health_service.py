"""Deployment diagnostics: which secrets are set, and optional live probes.

Live probes call real upstreams, so they only run when the caller presents
the shared secret configured in HEALTH_CHECK_SECRET.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.core.config import Settings
from edge_api.core.errors import AppError

logger = logging.getLogger(__name__)

PROBE_TOKEN = "__health_check_token__"
PROBE_GEOCODE_TEXT = "Kathmandu"


class HealthService:
    def __init__(self, settings: Settings, fetcher: TimeoutFetcher) -> None:
        self._settings = settings
        self._fetcher = fetcher

    def configured(self) -> dict[str, bool]:
        """Report presence (never values) of each upstream secret."""
        s = self._settings
        return {
            "TURNSTILE_SECRET_KEY": bool(s.turnstile.secret_key),
            "TURNSTILE_EXPECTED_HOSTNAMES": bool(s.turnstile.expected_hostnames),
            "GEOAPIFY_API_KEY": bool(s.geoapify.api_key),
            "SUPABASE_URL": bool(s.supabase.url),
            "SUPABASE_SERVICE_ROLE_KEY": bool(s.supabase.service_role_key),
        }

    def live_checks_authorized(self, provided_secret: str | None) -> bool:
        expected = (self._settings.health.check_secret or "").strip()
        provided = (provided_secret or "").strip()
        return bool(expected and provided) and hmac.compare_digest(expected, provided)

    async def report(
        self,
        *,
        client_ip: str,
        run_tests: bool,
        provided_secret: str | None,
    ) -> dict[str, Any]:
        allow_live = run_tests and self.live_checks_authorized(provided_secret)
        if allow_live:
            note = "Running live upstream checks (authorized)"
        elif run_tests:
            note = "Live tests requested but not authorized (missing/invalid HEALTH_CHECK_SECRET header)."
            logger.warning("health.live_checks_unauthorized")
        else:
            note = "Live tests not requested."

        checks: dict[str, Any] = {}
        if allow_live:
            checks["turnstile"] = await self._probe_turnstile()
            checks["geoapify"] = await self._probe_geoapify()

        return {
            "ok": True,
            "env": self.configured(),
            "checks": checks,
            "note": note,
            "clientIp": client_ip,
        }

    async def _probe_turnstile(self) -> dict[str, Any]:
        try:
            response = await self._fetcher.fetch(
                self._settings.turnstile.verify_url,
                method="POST",
                timeout_seconds=self._settings.health.probe_timeout_seconds,
                max_retries=0,
                data={"secret": self._settings.turnstile.secret_key or "", "response": PROBE_TOKEN},
            )
        except AppError as exc:
            return {"error": exc.message}
        body = _json_or_none(response)
        return {
            "status": response.status_code,
            "body": (
                {"success": bool(body.get("success")), "errorCodes": body.get("error-codes")}
                if body is not None
                else None
            ),
        }

    async def _probe_geoapify(self) -> dict[str, Any]:
        try:
            response = await self._fetcher.fetch(
                f"{self._settings.geoapify.base_url.rstrip('/')}/v1/geocode/search",
                timeout_seconds=self._settings.health.probe_timeout_seconds,
                max_retries=0,
                params={
                    "text": PROBE_GEOCODE_TEXT,
                    "apiKey": self._settings.geoapify.api_key or "",
                    "limit": "1",
                    "format": "geojson",
                },
            )
        except AppError as exc:
            return {"error": exc.message}
        body = _json_or_none(response)
        features = body.get("features") if body is not None else None
        return {
            "status": response.status_code,
            "body": {"features": len(features) if isinstance(features, list) else None} if body is not None else None,
        }


def _json_or_none(response: Any) -> dict[str, Any] | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
