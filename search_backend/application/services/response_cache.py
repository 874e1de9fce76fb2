"""TTL response cache for forum replies — expiry is checked on read only."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    value: Any
    expiry: float


class ResponseCache:
    """Process-local key/value cache with hit/miss/set statistics."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._sets = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None or self._clock() > entry.expiry:
            self._entries.pop(key, None)
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, expiry=self._clock() + self._ttl)
        self._sets += 1

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "sets": self._sets,
            "hit_rate": (self._hits / total) * 100 if total else 0.0,
            "total_requests": total,
            "cache_size": len(self._entries),
        }
