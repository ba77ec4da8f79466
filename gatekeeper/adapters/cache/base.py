"""Cache interface for throttle state.

The throttle engine depends on this abstraction (not a concrete store) so
the counter backend can be swapped (in-memory, Redis) without touching the
decision logic. The cache is a dumb key-value store with TTL support; it
knows nothing about the records kept in it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCache(ABC):
    """Interface for byte-oriented key-value stores with expiry.

    Implementations must be safe to call concurrently from several decision
    calls and must raise ``StorageAppError`` when the backend cannot serve a
    read or write.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when absent or expired.

        Raises:
            StorageAppError: If the backend cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        """Store a value.

        Args:
            key: Cache key.
            value: Serialized record.
            ttl_seconds: Lifetime in seconds; None keeps the value until it is
                removed outside this system.

        Raises:
            StorageAppError: If the backend cannot be written.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources. Per-process stores hold none."""
