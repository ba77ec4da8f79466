"""Throttle event sinks.

The engine emits structured events through ``AbstractEventSink``; the
default deployment logs them, tests record them.
"""

from gatekeeper.adapters.events.base import (
    AbstractEventSink,
    ClientDescriptor,
    EventLevel,
    NullEventSink,
    ThrottleEvent,
)
from gatekeeper.adapters.events.logging_sink import LoggingEventSink

__all__ = [
    "AbstractEventSink",
    "ClientDescriptor",
    "EventLevel",
    "LoggingEventSink",
    "NullEventSink",
    "ThrottleEvent",
]
