"""A TTL-based in-memory cache for upstream lookups.

``None`` is a legitimate cached value (an upstream that had no answer), so
misses are signalled with the :data:`MISSING` sentinel instead.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any

import structlog

log = structlog.get_logger("unidep.resolver")

MISSING: Any = object()


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0


class TTLCache:
    """String-keyed cache with lazy expiry on read."""

    def __init__(
        self,
        ttl: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._ttl = ttl
        self._clock = clock
        self.name = name
        self.stats = CacheStats()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Any:
        """Return the cached value, or :data:`MISSING` when absent or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and entry.expired(self._clock()):
                del self._store[key]
                entry = None
            if entry is None:
                self.stats.misses += 1
                return MISSING
            self.stats.hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            self._store[key] = CacheEntry(
                value=value,
                stored_at=self._clock(),
                ttl=self._ttl if ttl is None else ttl,
            )

    def get_or_fetch(self, key: str, fetch: Callable[[], Any]) -> Any:
        """Return the cached value for *key*, calling *fetch* on a miss.

        The lock is not held while *fetch* runs; two threads missing the same
        key may both fetch and the last write wins.
        """
        value = self.get(key)
        if value is not MISSING:
            return value
        value = fetch()
        self.set(key, value)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            dropped = len(self._store)
            self._store.clear()
        log.debug("cache.cleared", cache=self.name, entries=dropped)

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._store.get(key)
            return entry is not None and not entry.expired(self._clock())
