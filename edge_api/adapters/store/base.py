"""Backing-store interface.

Form handlers only need one operation: insert a record into a table and
learn whether it worked. Duplicate-key failures are reported separately so
idempotent writes (newsletter subscriptions) can treat them as success.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a single insert.

    Attributes:
        ok: Whether the record was written.
        duplicate: The write was refused because the record already exists.
        error: Store-provided error message when ``ok`` is False.
    """

    ok: bool
    duplicate: bool = False
    error: str | None = None

    @classmethod
    def success(cls) -> "StoreResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str, *, duplicate: bool = False) -> "StoreResult":
        return cls(ok=False, duplicate=duplicate, error=error)


class AbstractRecordStore(ABC):
    """Interface for the backing store."""

    @abstractmethod
    async def insert(self, table: str, record: dict[str, Any]) -> StoreResult:
        """Insert one record into ``table``."""
        raise NotImplementedError


def looks_like_duplicate(message: str) -> bool:
    """Whether a store error message describes a unique-constraint violation."""
    lowered = message.lower()
    return "duplicate" in lowered or "unique" in lowered
