"""Event sink interfaces for throttle events.

The engine reports what it did (rate limit exceeded, client blacklisted,
request processed) to a sink. Sinks are fire-and-forget: the engine never
waits on them and their failures are not throttle errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"


@dataclass(frozen=True)
class ClientDescriptor:
    """Who sent the request, for logging only.

    Attributes:
        address: Source address, or "unknown" when the transport has none.
        user_agent: User-Agent header value (may be empty).
        method: HTTP method.
        path: Request path.
    """

    address: str
    user_agent: str
    method: str
    path: str

    def as_dict(self) -> dict[str, str]:
        return {
            "address": self.address,
            "user_agent": self.user_agent,
            "method": self.method,
            "path": self.path,
        }


@dataclass(frozen=True)
class ThrottleEvent:
    """A structured throttle event.

    Attributes:
        level: Severity (info, warning, alert).
        message: Human-readable summary.
        client: Descriptor of the requesting client, when known.
        fields: Decision-specific values (request_count, limit, reset_at,
            violations, threshold, remaining).
    """

    level: EventLevel
    message: str
    client: ClientDescriptor | None = None
    fields: dict[str, Any] = field(default_factory=dict)


class AbstractEventSink(ABC):
    """Interface for throttle event consumers."""

    @abstractmethod
    def emit(self, event: ThrottleEvent) -> None:
        raise NotImplementedError


class NullEventSink(AbstractEventSink):
    """Sink that discards every event."""

    def emit(self, event: ThrottleEvent) -> None:
        return None
