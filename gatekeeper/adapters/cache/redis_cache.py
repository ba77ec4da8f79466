"""Redis-backed cache for throttle state shared across workers.

Uses the synchronous redis-py client: a throttle decision is a short,
bounded sequence of GET/SET round trips, and the socket timeout bounds each
of them. Every ``redis.RedisError`` (connection refused, timeout, protocol
error) is re-raised as ``StorageAppError`` so callers can choose to fail
open or closed.
"""

from __future__ import annotations

import logging

import redis

from gatekeeper.adapters.cache.base import AbstractCache
from gatekeeper.core.errors import StorageAppError

logger = logging.getLogger(__name__)


class RedisCache(AbstractCache):
    """Cache implementation on top of a Redis server.

    Example:
        >>> cache = RedisCache.from_url("redis://localhost:6379/0")
        >>> cache.set("throttle:window:abc", b"{}", ttl_seconds=60)
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 0.5) -> "RedisCache":
        """Build a cache from a connection URL.

        Args:
            url: Redis URL (e.g. ``redis://localhost:6379/0``).
            socket_timeout: Seconds before a connect/read is abandoned.
        """
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def get(self, key: str) -> bytes | None:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise self._storage_error("get", key, exc) from exc

        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode()

    def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        try:
            if ttl_seconds is None:
                self._client.set(key, value)
            else:
                self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            raise self._storage_error("set", key, exc) from exc

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()

    @staticmethod
    def _storage_error(operation: str, key: str, exc: Exception) -> StorageAppError:
        logger.error(
            "cache.redis_failed",
            extra={
                "operation": operation,
                "cache_key": key,
                "error_type": type(exc).__name__,
            },
        )
        return StorageAppError(
            code="cache_unavailable",
            message=f"Cache {operation} failed",
            details={"backend": "redis", "operation": operation, "cache_key": key},
        )
