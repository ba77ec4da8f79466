"""Pydantic schemas for throttle state records and admin responses.

Each kind of state lives under its own key and is serialized as its own
model, so a stored value is never ambiguous about what it holds.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class WindowState(BaseModel):
    """Fixed-window counter for one client signature."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    request_count: int = Field(
        0,
        ge=0,
        description="Requests admitted in the current window.",
    )
    window_start: int = Field(
        ...,
        description="UNIX epoch seconds at which the current window opened.",
    )


class ViolationState(BaseModel):
    """Number of rate-limit violations still remembered for a client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    violations: int = Field(
        0,
        ge=0,
        description="Denied-for-limit requests recorded within the violation TTL.",
    )


class BlacklistFlag(BaseModel):
    """Permanent denial marker for a client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    blacklisted_at: int = Field(
        ...,
        description="UNIX epoch seconds at which the client was blacklisted.",
    )


class ClientStatus(BaseModel):
    """Read-only view of the throttle state kept for one signature."""

    signature: str = Field(..., description="Client signature (hex SHA-256).")
    limit: int = Field(..., description="Configured requests per window.")
    window_seconds: int = Field(..., description="Configured window length in seconds.")
    request_count: int = Field(
        ..., description="Requests admitted in the current window (0 when the window has lapsed)."
    )
    remaining: int = Field(..., description="Requests still allowed in the current window.")
    reset_at: int | None = Field(
        None, description="UNIX epoch seconds when the current window ends (None without a window)."
    )
    violations: int = Field(0, description="Remembered rate-limit violations.")
    blacklist_threshold: int | None = Field(
        None, description="Violations that trigger blacklisting (None when disabled)."
    )
    blacklisted: bool = Field(False, description="Whether the client is permanently denied.")
    blacklisted_at: int | None = Field(
        None, description="UNIX epoch seconds at which the client was blacklisted."
    )


class SignatureResponse(BaseModel):
    """Signature derived for an address and user agent."""

    signature: str = Field(..., description="Client signature (hex SHA-256).")
