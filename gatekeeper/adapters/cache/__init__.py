"""Cache adapters holding throttle state.

The engine talks to ``AbstractCache`` only. ``build_cache`` picks the
concrete backend from configuration: the in-memory store for a single
process, or Redis when several workers must share counters.
"""

from __future__ import annotations

from gatekeeper.adapters.cache.base import AbstractCache
from gatekeeper.adapters.cache.in_memory import InMemoryTTLCache
from gatekeeper.adapters.cache.redis_cache import RedisCache
from gatekeeper.core.config import CacheSettings

__all__ = ["AbstractCache", "InMemoryTTLCache", "RedisCache", "build_cache"]


def build_cache(cache_settings: CacheSettings) -> AbstractCache:
    """Create the cache backend selected by ``CACHE_BACKEND``."""

    if cache_settings.backend == "redis":
        return RedisCache.from_url(
            cache_settings.redis_url,
            socket_timeout=cache_settings.socket_timeout_seconds,
        )
    return InMemoryTTLCache(max_entries=cache_settings.max_entries)
