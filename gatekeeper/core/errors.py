"""Application-level exception types.

This module defines domain errors used across the throttle engine, cache
adapters and HTTP layer, enabling consistent error handling, logging, and
API responses.

Note that throttling outcomes (allowed, rate limited, blacklisted) are
decisions, not errors. Only failures that prevent a decision live here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes flexible while encouraging
    consistent naming across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    min_value: int
    actual_value: Any
    backend: str
    operation: str
    cache_key: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError):
    """Raised when the throttle is configured with invalid values."""


class StorageAppError(AppError):
    """Raised when the counter cache cannot be read or written."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""
