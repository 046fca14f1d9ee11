"""In-memory TTL cache used to avoid repeated upstream lookups.

Entries are only checked (and evicted) when they are read: there is no
background sweep and no size cap, so memory grows with the number of
distinct keys seen by the process. That is acceptable for a low-traffic,
short-lived deployment and is the main scaling limit of this cache.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from edge_api.utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """Container for cached values with expiration metadata."""

    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Thread-safe, in-memory key/value store with per-entry expiry.

    Writers to the same key serialize on that key's lock and the last write
    wins. Reads take the same lock, so an expiring reader cannot delete a
    value that a concurrent writer has just stored.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, CacheEntry[V]] = {}
        self._locks = KeyedLock()
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TTLCache(size={len(self._store)}, hits={self._hits}, "
            f"misses={self._misses}, evictions={self._evictions})"
        )

    def get(self, key: str) -> V | None:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired. A stored ``None`` is
            indistinguishable from a miss, so callers cache only real values.
        """

        with self._locks.hold(key):
            entry = self._store.get(key)
            if entry is None:
                self._record(misses=1)
                logger.debug("cache.miss", extra={"cache_key": key[:64], "reason": "not_found"})
                return None

            if self._clock() > entry.expires_at:
                del self._store[key]
                self._record(misses=1, evictions=1)
                logger.debug("cache.miss", extra={"cache_key": key[:64], "reason": "expired"})
                return None

        self._record(hits=1)
        logger.debug("cache.hit", extra={"cache_key": key[:64]})
        return entry.value

    def set(self, key: str, value: V, ttl_seconds: float) -> None:
        """Store a value, replacing any existing entry and its expiry.

        Args:
            key: Cache key.
            value: Value to store.
            ttl_seconds: Seconds until the entry is treated as absent.
        """

        with self._locks.hold(key):
            self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

        logger.debug("cache.set", extra={"cache_key": key[:64], "ttl_s": ttl_seconds})

    def delete(self, key: str) -> None:
        with self._locks.hold(key):
            self._store.pop(key, None)

    def clear(self) -> None:
        """Remove all cached entries and reset counters.

        Per-key locks are not taken, so a ``set`` racing a ``clear`` may land on
        either side of it. Intended for tests and shutdown only.
        """

        with self._stats_lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int]:
        """Return lightweight cache metrics without exposing values."""

        with self._stats_lock:
            return {
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _record(self, *, hits: int = 0, misses: int = 0, evictions: int = 0) -> None:
        with self._stats_lock:
            self._hits += hits
            self._misses += misses
            self._evictions += evictions


def build_cache_key(namespace: str, *parts: Any) -> str:
    """Join a namespace and already-normalized parts into a cache key.

    Callers are responsible for normalizing the parts (rounding, lower-casing,
    sorting) so that equivalent queries collapse onto one key.

    >>> build_cache_key("places", "27.70000,85.30000", 150000, 40, "a,b")
    'places:27.70000,85.30000:150000:40:a,b'
    """

    return ":".join([namespace, *(str(part) for part in parts)])
