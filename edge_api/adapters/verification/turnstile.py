"""Cloudflare Turnstile verification adapter."""

from __future__ import annotations

import logging

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.adapters.verification.base import AbstractVerifier, VerificationResult
from edge_api.core.client_identity import UNKNOWN_CLIENT
from edge_api.core.errors import UpstreamTimeoutError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


class TurnstileVerifier(AbstractVerifier):
    """Checks Turnstile tokens against the siteverify endpoint.

    Tokens are single-use, so each call makes exactly one attempt: a retry
    would either consume the token twice or waste the client's window.
    """

    def __init__(
        self,
        fetcher: TimeoutFetcher,
        *,
        secret_key: str,
        verify_url: str,
        timeout_seconds: float = 4.0,
        expected_hostnames: frozenset[str] = frozenset(),
    ) -> None:
        self._fetcher = fetcher
        self._secret_key = secret_key
        self._verify_url = verify_url
        self._timeout_seconds = timeout_seconds
        self._expected_hostnames = expected_hostnames

    async def verify(
        self,
        token: str | None,
        expected_action: str | None,
        client_ip: str,
    ) -> VerificationResult:
        response_token = (token or "").strip()
        if not response_token:
            return self._rejected(VerificationResult.reject("missing-input-response"))

        form = {"secret": self._secret_key, "response": response_token}
        if client_ip and client_ip != UNKNOWN_CLIENT:
            form["remoteip"] = client_ip

        try:
            response = await self._fetcher.fetch(
                self._verify_url,
                method="POST",
                timeout_seconds=self._timeout_seconds,
                max_retries=0,
                data=form,
            )
        except (UpstreamTimeoutError, UpstreamUnavailableError) as exc:
            logger.error(
                "verification.network_error",
                extra={"error_code": exc.code},
            )
            return self._rejected(VerificationResult.reject("network-error"))

        if not response.is_success:
            return self._rejected(VerificationResult.reject(f"http-{response.status_code}"))

        try:
            data = response.json()
        except ValueError:
            return self._rejected(VerificationResult.reject("invalid-response"))
        if not isinstance(data, dict):
            return self._rejected(VerificationResult.reject("invalid-response"))

        if data.get("success") is not True:
            codes = data.get("error-codes")
            reason_codes = [str(c) for c in codes] if isinstance(codes, list) and codes else ["verification-failed"]
            return self._rejected(VerificationResult.reject(*reason_codes))

        reported_action = data.get("action")
        if expected_action and reported_action and reported_action != expected_action:
            return self._rejected(VerificationResult.reject("action-mismatch"))

        if self._expected_hostnames:
            hostname = str(data.get("hostname") or "").strip()
            if hostname not in self._expected_hostnames:
                return self._rejected(VerificationResult.reject("hostname-mismatch"))

        logger.info("verification.accepted", extra={"action": reported_action or expected_action})
        return VerificationResult.accept()

    @staticmethod
    def _rejected(result: VerificationResult) -> VerificationResult:
        logger.warning("verification.rejected", extra={"reason_codes": result.reason_codes})
        return result


def parse_hostnames(raw: str | None) -> frozenset[str]:
    """Parse a comma-separated hostname list.

    >>> sorted(parse_hostnames("a.example, b.example ,,"))
    ['a.example', 'b.example']
    """
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
