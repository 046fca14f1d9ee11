"""Factory for the backing-store adapter."""

from __future__ import annotations

import logging

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.adapters.store.base import AbstractRecordStore
from edge_api.adapters.store.supabase import SupabaseRecordStore
from edge_api.core.config import Settings
from edge_api.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


def create_record_store(settings: Settings, fetcher: TimeoutFetcher) -> AbstractRecordStore:
    """Build the Supabase store from settings.

    Raises:
        ConfigurationAppError: If the Supabase URL or service-role key is missing.
    """
    url = settings.supabase.url
    key = settings.supabase.service_role_key
    if not url or not key:
        logger.error(
            "store.not_configured",
            extra={"url_present": bool(url), "service_role_key_present": bool(key)},
        )
        raise ConfigurationAppError(
            code="store_not_configured",
            message="Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY on the server.",
            details={"setting": "SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY"},
        )

    return SupabaseRecordStore(
        fetcher,
        url=url,
        service_role_key=key,
        timeout_seconds=settings.supabase.timeout_seconds,
    )
