"""In-memory LRU cache mapping original message ts -> posted reply ts.

When a request message is edited, the compile stage looks up the reply it
posted for the original and updates that message instead of posting a new
one. Entries only leave the cache through capacity eviction; nothing is
persisted across restarts.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass


@dataclass(frozen=True)
class CacheStats:
    """Basic cache metrics for diagnostics."""

    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int


class ReplyCache:
    """Capacity-bounded LRU store with coarse-grained locking."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"cache capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._lock = threading.Lock()
        self._store: OrderedDict[str, str] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def add(self, key: str, value: str) -> bool:
        """Insert or refresh an entry. Returns True if an entry was evicted."""
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
                self._store[key] = value
                return False

            self._store[key] = value
            if len(self._store) > self._capacity:
                self._store.popitem(last=False)
                self._evictions += 1
                return True
            return False

    def get(self, key: str) -> str | None:
        """Return the cached value and mark it as recently used."""
        with self._lock:
            value = self._store.get(key)
            if value is None:
                self._misses += 1
                return None
            self._store.move_to_end(key)
            self._hits += 1
            return value

    def contains(self, key: str) -> bool:
        """Check for a key without touching its recency."""
        with self._lock:
            return key in self._store

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def describe(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._store),
                capacity=self._capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )
