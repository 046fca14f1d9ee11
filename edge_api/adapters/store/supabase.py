"""Supabase backing store over its PostgREST HTTP interface."""

from __future__ import annotations

import json
import logging
from typing import Any

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.adapters.store.base import AbstractRecordStore, StoreResult, looks_like_duplicate
from edge_api.core.errors import UpstreamTimeoutError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class SupabaseRecordStore(AbstractRecordStore):
    """Inserts rows with the service-role key.

    Writes are attempted once. Retrying an insert whose response was lost
    could write the row twice.
    """

    def __init__(
        self,
        fetcher: TimeoutFetcher,
        *,
        url: str,
        service_role_key: str,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._fetcher = fetcher
        self._rest_url = f"{url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        self._timeout_seconds = timeout_seconds

    async def insert(self, table: str, record: dict[str, Any]) -> StoreResult:
        try:
            response = await self._fetcher.fetch(
                f"{self._rest_url}/{table}",
                method="POST",
                timeout_seconds=self._timeout_seconds,
                max_retries=0,
                headers=self._headers,
                json=record,
            )
        except (UpstreamTimeoutError, UpstreamUnavailableError) as exc:
            logger.error("store.insert_failed", extra={"table": table, "error_code": exc.code})
            return StoreResult.failure(exc.message)

        if response.is_success:
            logger.info("store.inserted", extra={"table": table})
            return StoreResult.success()

        code, message = _parse_error(response.text)
        duplicate = (
            response.status_code == 409
            or code == UNIQUE_VIOLATION
            or looks_like_duplicate(message)
        )
        logger.warning(
            "store.insert_rejected",
            extra={
                "table": table,
                "status_code": response.status_code,
                "pg_code": code,
                "duplicate": duplicate,
            },
        )
        return StoreResult.failure(message or f"Insert failed ({response.status_code}).", duplicate=duplicate)


def _parse_error(body: str) -> tuple[str | None, str]:
    """Extract (code, message) from a PostgREST error body."""

    try:
        data = json.loads(body) if body else {}
    except ValueError:
        return None, body.strip()
    if not isinstance(data, dict):
        return None, ""
    code = data.get("code")
    return (str(code) if code is not None else None), str(data.get("message") or "")
