"""Backing-store adapters."""

from edge_api.adapters.store.base import AbstractRecordStore, StoreResult
from edge_api.adapters.store.factory import create_record_store
from edge_api.adapters.store.in_memory import InMemoryRecordStore
from edge_api.adapters.store.supabase import SupabaseRecordStore

__all__ = [
    "AbstractRecordStore",
    "InMemoryRecordStore",
    "StoreResult",
    "SupabaseRecordStore",
    "create_record_store",
]
