"""In-memory record store for local development and tests."""

from __future__ import annotations

import threading
from typing import Any

from edge_api.adapters.store.base import AbstractRecordStore, StoreResult


class InMemoryRecordStore(AbstractRecordStore):
    """Keeps inserted rows per table, optionally enforcing unique columns.

    Args:
        unique_columns: Mapping of table name to the column that must be
            unique in that table (e.g. ``{"newsletter_subscribers": "email"}``).
    """

    def __init__(self, unique_columns: dict[str, str] | None = None) -> None:
        self._unique_columns = dict(unique_columns or {})
        self._rows: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.Lock()

    async def insert(self, table: str, record: dict[str, Any]) -> StoreResult:
        with self._lock:
            rows = self._rows.setdefault(table, [])
            column = self._unique_columns.get(table)
            if column is not None and any(row.get(column) == record.get(column) for row in rows):
                return StoreResult.failure(
                    f'duplicate key value violates unique constraint "{table}_{column}_key"',
                    duplicate=True,
                )
            rows.append(dict(record))
        return StoreResult.success()

    def rows(self, table: str) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(row) for row in self._rows.get(table, [])]
