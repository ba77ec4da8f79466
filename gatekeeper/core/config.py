"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_throttle_settings() -> "ThrottleSettings":
    """Build throttle settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return ThrottleSettings()  # type: ignore[call-arg]


def _build_cache_settings() -> "CacheSettings":
    return CacheSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_throttle_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


class ThrottleSettings(BaseSettings):
    """Per-client throttling configuration.

    ``blacklist_threshold`` is deliberately not range-checked here: the
    throttle engine validates it and raises ConfigurationAppError, so the
    same rule applies whether the engine is built from settings or by hand.
    """

    enabled: bool = Field(
        True,
        description="Enable the throttle middleware",
    )
    limit: int = Field(
        60,
        description="Maximum number of requests allowed per window (per client signature)",
        ge=1,
    )
    window_seconds: int = Field(
        60,
        description="Fixed window length in seconds",
        ge=1,
    )
    blacklist_threshold: int | None = Field(
        None,
        description="Rate limit violations after which a client is permanently denied (unset disables)",
    )
    log_all_requests: bool = Field(
        False,
        description="Emit an info event for every allowed request",
    )
    fail_open: bool = Field(
        False,
        description="Forward requests when the counter cache is unavailable instead of answering 503",
    )
    exempt_paths: str = Field(
        "/health,/v1/admin/",
        description=(
            "Comma-separated request paths that bypass throttling; "
            "an entry ending in '/' exempts every path under it"
        ),
    )
    key_prefix: str = Field(
        "throttle",
        description="Namespace prepended to every cache key",
    )

    model_config = SettingsConfigDict(
        env_prefix="THROTTLE_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Counter storage configuration."""

    backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Cache backend holding throttle state (memory or redis)",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (used when backend=redis)",
    )
    socket_timeout_seconds: float = Field(
        0.5,
        description="Redis socket timeout; timeouts surface as storage errors",
        gt=0,
    )
    max_entries: int | None = Field(
        None,
        description="Maximum entries kept by the in-memory backend (None for unlimited; capacity eviction may drop blacklist flags)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field(
        "INFO",
        description="Root log level",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format (json or plain)",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Log destination (stdout or file)",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to receive and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_api_key_required: bool = Field(
        True,
        description="Whether admin endpoints require an API key",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for admin endpoints",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    throttle: ThrottleSettings = Field(default_factory=_build_throttle_settings)
    cache: CacheSettings = Field(default_factory=_build_cache_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
