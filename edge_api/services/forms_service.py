"""Persistence of validated form submissions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from edge_api.adapters.store.base import AbstractRecordStore
from edge_api.core.errors import PersistenceAppError
from edge_api.schemas.forms import FormAck
from edge_api.services.validation import (
    ContactSubmission,
    LeadSubmission,
    NewsletterSubscription,
)

logger = logging.getLogger(__name__)

CONTACT_TABLE = "contact_messages"
LEAD_TABLE = "itinerary_queries"
NEWSLETTER_TABLE = "newsletter_subscribers"


class FormsService:
    """Writes submissions to the backing store.

    The store is resolved per call so a missing Supabase configuration
    fails the request that needs it instead of the whole application.
    Writes are never retried here.
    """

    def __init__(
        self,
        store_provider: Callable[[], AbstractRecordStore],
        *,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store_provider = store_provider
        self._now = now

    async def submit_contact(self, submission: ContactSubmission) -> FormAck:
        await self._insert(
            CONTACT_TABLE,
            {"name": submission.name, "email": submission.email, "message": submission.message},
            failure_message="Failed to save message.",
        )
        return FormAck(ok=True)

    async def submit_lead(self, submission: LeadSubmission) -> FormAck:
        await self._insert(
            LEAD_TABLE,
            {
                "trip_id": submission.trip_id,
                "trip_title": submission.trip_title,
                "name": submission.name,
                "whatsapp_number": submission.whatsapp_number or None,
                "email": submission.email or None,
                "planning_time": submission.planning_time or "Website inquiry",
                "date": self._now().isoformat(),
                "status": "new",
            },
            failure_message="Failed to save lead.",
        )
        return FormAck(ok=True)

    async def subscribe_newsletter(self, subscription: NewsletterSubscription) -> FormAck:
        """Subscribe an email; subscribing twice is a successful no-op."""
        result = await self._store_provider().insert(NEWSLETTER_TABLE, {"email": subscription.email})
        if result.ok:
            return FormAck(ok=True)
        if result.duplicate:
            logger.info("forms.newsletter_duplicate")
            return FormAck(ok=True, duplicate=True)
        raise self._persistence_error(NEWSLETTER_TABLE, result.error, "Could not subscribe.")

    async def _insert(self, table: str, record: dict[str, Any], *, failure_message: str) -> None:
        result = await self._store_provider().insert(table, record)
        if not result.ok:
            raise self._persistence_error(table, result.error, failure_message)
        logger.info("forms.stored", extra={"table": table})

    @staticmethod
    def _persistence_error(table: str, error: str | None, fallback: str) -> PersistenceAppError:
        logger.error("forms.persist_failed", extra={"table": table, "store_error": error})
        return PersistenceAppError(
            code="persistence_failed",
            message=error or fallback,
            details={"table": table},
        )
