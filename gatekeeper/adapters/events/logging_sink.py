"""Event sink that writes throttle events to the standard logging tree."""

from __future__ import annotations

import logging

from gatekeeper.adapters.events.base import AbstractEventSink, EventLevel, ThrottleEvent

# logging has no "alert" level; CRITICAL is the closest match above ERROR.
_LEVELS = {
    EventLevel.INFO: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ALERT: logging.CRITICAL,
}


class LoggingEventSink(AbstractEventSink):
    """Forward events to a logger with the client and fields as ``extra``.

    With the JSON formatter configured, an event renders as::

        {"level": "warning", "message": "Rate limit exceeded",
         "event_level": "warning", "client": {...}, "limit": 10, ...}
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("gatekeeper.throttle.events")

    def emit(self, event: ThrottleEvent) -> None:
        extra = {"event_level": event.level.value, **event.fields}
        if event.client is not None:
            extra["client"] = event.client.as_dict()
        self._logger.log(_LEVELS[event.level], event.message, extra=extra)
