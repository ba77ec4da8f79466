"""Fixed-window throttle engine with violation tracking and blacklisting.

The engine answers one question per request: may this client signature
proceed? It keeps three kinds of state in the cache, each under its own key:

- window:     ``WindowState`` with TTL = window length
- violations: ``ViolationState`` with TTL = 2 x window length
- blacklist:  ``BlacklistFlag`` with no TTL (cleared only outside this system)

The window is a hard fixed window anchored at the first request after the
previous one lapsed. A burst straddling a boundary can therefore see up to
``2 * limit`` admissions; that is the price of O(1) state per client.

Concurrency: the window read-modify-write is not atomic. Concurrent requests
from the same signature may observe the same count and briefly overshoot the
limit. Requests from different signatures never interact.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from pydantic import BaseModel, ValidationError

from gatekeeper.adapters.cache.base import AbstractCache
from gatekeeper.adapters.events import (
    AbstractEventSink,
    ClientDescriptor,
    EventLevel,
    NullEventSink,
    ThrottleEvent,
)
from gatekeeper.core.errors import ConfigurationAppError, StorageAppError
from gatekeeper.schemas.throttle import BlacklistFlag, ClientStatus, ViolationState, WindowState

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class Allowed:
    """The request may proceed.

    Attributes:
        limit: Max requests per window.
        remaining: Requests left in the window after this one.
        reset_at: UNIX epoch seconds when the window ends.
    """

    limit: int
    remaining: int
    reset_at: int


@dataclass(frozen=True)
class RateLimited:
    """The request exceeded the window budget.

    Attributes:
        limit: Max requests per window.
        retry_after: Seconds until the window ends.
        reset_at: UNIX epoch seconds when the window ends.
        violations: Remembered violations including this one (None when
            blacklisting is disabled).
        escalated: True when this violation got the client blacklisted.
    """

    limit: int
    retry_after: int
    reset_at: int
    violations: int | None = None
    escalated: bool = False


@dataclass(frozen=True)
class Blacklisted:
    """The client is permanently denied; no retry information applies."""


Decision = Allowed | RateLimited | Blacklisted


def _validate_positive(name: str, value: int) -> None:
    if value < 1:
        raise ConfigurationAppError(
            code=f"invalid_{name}",
            message=f"{name} must be greater than 0",
            details={"field": name, "min_value": 1, "actual_value": value},
        )


class ThrottleEngine:
    """Per-signature allow/deny/blacklist decisions over an abstract cache.

    The engine holds configuration only; all mutable state lives in the
    cache. ``decide`` returns a decision value and leaves it to the caller
    to build a response and to invoke (or not) the next handler.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        cache: AbstractCache,
        event_sink: AbstractEventSink | None = None,
        blacklist_threshold: int | None = None,
        log_all_requests: bool = False,
        key_prefix: str = "throttle",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            limit: Maximum requests per window and signature.
            window_seconds: Fixed window length in seconds.
            cache: Store holding window, violation and blacklist records.
            event_sink: Receiver of throttle events (discarded when None).
            blacklist_threshold: Violations after which a signature is
                permanently denied; None disables blacklisting.
            log_all_requests: Emit an info event for every allowed request.
            key_prefix: Namespace for cache keys.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ConfigurationAppError: If limit, window_seconds or
                blacklist_threshold is not positive.
        """
        _validate_positive("limit", limit)
        _validate_positive("window_seconds", window_seconds)
        if blacklist_threshold is not None:
            _validate_positive("blacklist_threshold", blacklist_threshold)

        self._limit = limit
        self._window_seconds = window_seconds
        self._cache = cache
        self._sink = event_sink or NullEventSink()
        self._blacklist_threshold = blacklist_threshold
        self._log_all_requests = log_all_requests
        self._key_prefix = key_prefix
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    @property
    def blacklist_threshold(self) -> int | None:
        return self._blacklist_threshold

    def close(self) -> None:
        """Release the cache backend (pooled Redis connections)."""
        self._cache.close()

    def enable_blacklist(self, threshold: int) -> "ThrottleEngine":
        """Blacklist signatures after ``threshold`` rate-limit violations.

        Raises:
            ConfigurationAppError: If threshold is not positive. The engine
                is left unchanged.
        """
        _validate_positive("blacklist_threshold", threshold)
        self._blacklist_threshold = threshold
        return self

    def decide(self, signature: str, client: ClientDescriptor | None = None) -> Decision:
        """Decide whether a request from ``signature`` may proceed.

        Args:
            signature: Client signature (see ``derive_signature``).
            client: Descriptor attached to emitted events.

        Returns:
            Allowed, RateLimited or Blacklisted.

        Raises:
            StorageAppError: If the cache cannot be read or written, or holds
                a record that does not decode.
        """
        if self._is_blacklisted(signature):
            self._emit(EventLevel.WARNING, "Blocked request from blacklisted client", client)
            return Blacklisted()

        now = int(self._clock())
        window = self._current_window(signature, now)
        reset_at = window.window_start + self._window_seconds

        if window.request_count >= self._limit:
            self._emit(
                EventLevel.WARNING,
                "Rate limit exceeded",
                client,
                request_count=window.request_count,
                limit=self._limit,
                reset_at=reset_at,
            )
            violations, escalated = self._record_violation(signature, client, now)
            return RateLimited(
                limit=self._limit,
                retry_after=max(0, reset_at - now),
                reset_at=reset_at,
                violations=violations,
                escalated=escalated,
            )

        window = WindowState(
            request_count=window.request_count + 1,
            window_start=window.window_start,
        )
        self._write(self._key("window", signature), window, self._window_seconds)

        remaining = self._limit - window.request_count
        if self._log_all_requests:
            self._emit(
                EventLevel.INFO,
                "Request processed",
                client,
                request_count=window.request_count,
                limit=self._limit,
                remaining=remaining,
            )

        return Allowed(limit=self._limit, remaining=remaining, reset_at=reset_at)

    def inspect(self, signature: str) -> ClientStatus:
        """Report the stored state of a signature without changing it."""

        now = int(self._clock())
        window = self._read(self._key("window", signature), WindowState)
        if window is not None and self._window_lapsed(window, now):
            window = None

        violations = self._read(self._key("violations", signature), ViolationState)
        flag = self._read(self._key("blacklist", signature), BlacklistFlag)
        request_count = window.request_count if window else 0

        return ClientStatus(
            signature=signature,
            limit=self._limit,
            window_seconds=self._window_seconds,
            request_count=request_count,
            remaining=max(0, self._limit - request_count),
            reset_at=window.window_start + self._window_seconds if window else None,
            violations=violations.violations if violations else 0,
            blacklist_threshold=self._blacklist_threshold,
            blacklisted=flag is not None,
            blacklisted_at=flag.blacklisted_at if flag else None,
        )

    def _is_blacklisted(self, signature: str) -> bool:
        if self._blacklist_threshold is None:
            return False
        return self._read(self._key("blacklist", signature), BlacklistFlag) is not None

    def _current_window(self, signature: str, now: int) -> WindowState:
        window = self._read(self._key("window", signature), WindowState)
        if window is None or self._window_lapsed(window, now):
            # Written back only when the request is admitted.
            return WindowState(request_count=0, window_start=now)
        return window

    def _window_lapsed(self, window: WindowState, now: int) -> bool:
        return now - window.window_start > self._window_seconds

    def _record_violation(
        self,
        signature: str,
        client: ClientDescriptor | None,
        now: int,
    ) -> tuple[int | None, bool]:
        """Count a violation and blacklist the signature at the threshold.

        Returns:
            Tuple of (violation count or None when disabled, escalated).
        """
        threshold = self._blacklist_threshold
        if threshold is None:
            return None, False

        key = self._key("violations", signature)
        previous = self._read(key, ViolationState)
        state = ViolationState(violations=(previous.violations if previous else 0) + 1)
        self._write(key, state, self._window_seconds * 2)

        if state.violations < threshold:
            return state.violations, False

        self._write(self._key("blacklist", signature), BlacklistFlag(blacklisted_at=now), None)
        self._emit(
            EventLevel.ALERT,
            "Client blacklisted due to recurring rate limit violations",
            client,
            violations=state.violations,
            threshold=threshold,
        )
        return state.violations, True

    def _key(self, kind: str, signature: str) -> str:
        return f"{self._key_prefix}:{kind}:{signature}"

    def _read(self, key: str, model: type[RecordT]) -> RecordT | None:
        raw = self._cache.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise StorageAppError(
                code="corrupt_record",
                message=f"Stored {model.__name__} could not be decoded",
                details={"cache_key": key, "context": {"errors": exc.error_count()}},
            ) from exc

    def _write(self, key: str, record: BaseModel, ttl_seconds: int | None) -> None:
        self._cache.set(key, record.model_dump_json().encode("utf-8"), ttl_seconds)

    def _emit(
        self,
        level: EventLevel,
        message: str,
        client: ClientDescriptor | None,
        **fields: object,
    ) -> None:
        try:
            self._sink.emit(ThrottleEvent(level=level, message=message, client=client, fields=fields))
        except Exception:
            logger.exception("throttle.event_sink_failed", extra={"event_message": message})
