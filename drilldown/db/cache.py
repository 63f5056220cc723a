"""
Table snapshot cache.

The drill engine reads whole tables and filters client-side, so every
drill step would otherwise pull the same tables again.  `TableCache`
keeps the most recent snapshot of each table for a short TTL.

The cache is process-local (dict-based) with configurable TTL and max
size.
"""
from __future__ import annotations

import time
import threading
from dataclasses import dataclass
from typing import Any

from drilldown.core.logging import get_logger

logger = get_logger(__name__)


# ── Configuration ───────────────────────────────────────

DEFAULT_TTL_SECONDS = 60
DEFAULT_MAX_SIZE = 32


# ── Cache entry ─────────────────────────────────────────


@dataclass
class CacheEntry:
    """A single cached table snapshot."""
    key: str
    rows: list[dict[str, Any]]
    created_at: float
    ttl: float
    hit_count: int = 0

    @property
    def is_expired(self) -> bool:
        return (time.time() - self.created_at) > self.ttl


# ── Cache implementation ────────────────────────────────


class TableCache:
    """Thread-safe in-memory TTL cache of table rows.

    Parameters
    ----------
    ttl : float
        Time-to-live in seconds for each snapshot.
    max_size : int
        Maximum number of tables held. Oldest entries are evicted when full.
    """

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, max_size: int = DEFAULT_MAX_SIZE):
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = ttl
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    # ── Public API ──────────────────────────────────────

    def get(self, table: str) -> list[dict[str, Any]] | None:
        """Retrieve a cached snapshot, or ``None`` on miss / expiry."""
        key = self._make_key(table)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired:
                del self._store[key]
                self._misses += 1
                return None
            entry.hit_count += 1
            self._hits += 1
            logger.debug("Cache HIT table=%s hits=%d", key, entry.hit_count)
            return entry.rows

    def put(self, table: str, rows: list[dict[str, Any]]) -> None:
        """Store a snapshot in the cache."""
        key = self._make_key(table)
        with self._lock:
            if len(self._store) >= self._max_size and key not in self._store:
                self._evict_oldest()
            self._store[key] = CacheEntry(
                key=key, rows=rows, created_at=time.time(), ttl=self._ttl,
            )
        logger.debug("Cache PUT table=%s rows=%d size=%d", key, len(rows), len(self._store))

    def invalidate(self, table: str | None = None) -> int:
        """Remove one table or flush all. Returns number of entries removed."""
        with self._lock:
            if table is None:
                count = len(self._store)
                self._store.clear()
                return count
            key = self._make_key(table)
            if key in self._store:
                del self._store[key]
                return 1
            return 0

    def stats(self) -> dict[str, Any]:
        """Return cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._store),
                "max_size": self._max_size,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total else 0.0,
            }

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count removed."""
        with self._lock:
            expired = [k for k, v in self._store.items() if v.is_expired]
            for k in expired:
                del self._store[k]
            return len(expired)

    # ── Internals ───────────────────────────────────────

    @staticmethod
    def _make_key(table: str) -> str:
        return table.strip().lower()

    def _evict_oldest(self) -> None:
        """Remove the entry with the earliest creation time."""
        if not self._store:
            return
        oldest_key = min(self._store, key=lambda k: self._store[k].created_at)
        del self._store[oldest_key]
