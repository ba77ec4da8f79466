"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set here, before any import that might build
settings, so tests never depend on a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_ADMIN_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key-123,test-admin-key-456")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "plain")

from collections.abc import Iterator

import pytest

from gatekeeper.adapters.cache import InMemoryTTLCache
from gatekeeper.adapters.events import AbstractEventSink, EventLevel, ThrottleEvent
from gatekeeper.core.throttle import set_throttle_engine
from gatekeeper.services.throttle_engine import ThrottleEngine


class FakeClock:
    """Deterministic clock shared by caches and engines under test."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingEventSink(AbstractEventSink):
    """Keeps every emitted event for assertions."""

    def __init__(self) -> None:
        self.events: list[ThrottleEvent] = []

    def emit(self, event: ThrottleEvent) -> None:
        self.events.append(event)

    def messages(self, level: EventLevel | None = None) -> list[str]:
        return [e.message for e in self.events if level is None or e.level == level]

    def has_message_containing(self, text: str, level: EventLevel | None = None) -> bool:
        return any(text in message for message in self.messages(level))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryTTLCache:
    return InMemoryTTLCache(clock=clock)


@pytest.fixture
def sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def make_engine(cache: InMemoryTTLCache, sink: RecordingEventSink, clock: FakeClock):
    """Factory building engines that share the test cache, sink and clock."""

    def _make(**overrides) -> ThrottleEngine:
        kwargs = {
            "limit": 2,
            "window_seconds": 3600,
            "cache": cache,
            "event_sink": sink,
            "clock": clock,
        }
        kwargs.update(overrides)
        return ThrottleEngine(**kwargs)

    return _make


@pytest.fixture
def installed_engine() -> Iterator[None]:
    """Drop any process-wide engine installed by a test."""

    yield
    set_throttle_engine(None)
