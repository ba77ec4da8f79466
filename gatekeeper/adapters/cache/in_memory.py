"""In-memory TTL cache for throttle state.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Entries without a TTL never expire but still count toward ``max_entries``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from gatekeeper.adapters.cache.base import AbstractCache

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    value: bytes
    expires_at: float | None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class InMemoryTTLCache(AbstractCache):
    """Thread-safe, in-memory TTL cache with LRU eviction.

    An entry written with ``ttl_seconds=N`` at time ``t`` is readable while
    ``now <= t + N`` and absent afterwards.

    Important:
        State lives in this process only. With several Uvicorn/Gunicorn
        workers each worker throttles independently; use ``RedisCache`` to
        share counters.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            max_entries: Maximum number of entries (None for unlimited).
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If max_entries is not positive.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryTTLCache(max_entries={self._max_entries}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                self._evict(key)
                self._misses += 1
                logger.debug("cache.expired", extra={"cache_key": key})
                return None

            self._hits += 1
            self._store.move_to_end(key)  # mark as recently used
            return entry.value

    def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        with self._lock:
            now = self._clock()
            self._evict_expired_locked(now)
            expires_at = now + ttl_seconds if ttl_seconds is not None else None
            self._store[key] = _CacheEntry(value=value, expires_at=expires_at)
            self._store.move_to_end(key)
            self._evict_over_capacity_locked()

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int | None]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _evict_expired_locked(self, now: float) -> None:
        expired = [k for k, entry in self._store.items() if entry.is_expired(now)]
        for key in expired:
            self._evict(key)

    def _evict_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            key, _ = self._store.popitem(last=False)
            self._evictions += 1
            logger.debug("cache.evicted", extra={"cache_key": key, "reason": "capacity"})
