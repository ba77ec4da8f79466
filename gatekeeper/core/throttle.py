"""Throttle middleware wiring the engine into the HTTP layer.

This module is the engine's caller: it derives the client signature from
the request, asks the engine for a decision, and turns that decision into a
response.

- Allowed: the next handler runs and X-RateLimit-* headers are attached.
- RateLimited: 429 with Retry-After and X-RateLimit-* headers.
- Blacklisted: 403 with a fixed JSON error and no retry information.
- StorageAppError: 503 (fail closed) or pass-through (THROTTLE_FAIL_OPEN).

Usage:
    app.middleware("http")(throttle_middleware)
"""

from __future__ import annotations

import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from gatekeeper.adapters.cache import build_cache
from gatekeeper.adapters.events import LoggingEventSink
from gatekeeper.core.config import CacheSettings, ThrottleSettings, settings
from gatekeeper.core.errors import StorageAppError
from gatekeeper.core.logging import get_request_id
from gatekeeper.services.signature import describe_client, request_signature
from gatekeeper.services.throttle_engine import (
    Allowed,
    Blacklisted,
    RateLimited,
    ThrottleEngine,
)

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests, please try again later."
BLACKLISTED_MESSAGE = "Access denied due to repeated rate limit violations"

_engine: ThrottleEngine | None = None
_engine_config: tuple | None = None


def build_throttle_engine(
    throttle_settings: ThrottleSettings,
    cache_settings: CacheSettings,
) -> ThrottleEngine:
    """Build an engine, its cache and its logging sink from settings.

    Raises:
        ConfigurationAppError: If the throttle settings are invalid (e.g. a
            non-positive blacklist threshold).
    """

    return ThrottleEngine(
        limit=throttle_settings.limit,
        window_seconds=throttle_settings.window_seconds,
        cache=build_cache(cache_settings),
        event_sink=LoggingEventSink(),
        blacklist_threshold=throttle_settings.blacklist_threshold,
        log_all_requests=throttle_settings.log_all_requests,
        key_prefix=throttle_settings.key_prefix,
    )


def get_throttle_engine() -> ThrottleEngine:
    """Return the process-wide throttle engine.

    The instance is cached in-module so the in-memory backend keeps its
    state across requests. If configuration changes (primarily in tests),
    the engine is rebuilt.
    """

    global _engine, _engine_config

    config = (
        settings.throttle.model_dump_json(),
        settings.cache.model_dump_json(),
    )
    if _engine is None or _engine_config != config:
        previous = _engine
        _engine = build_throttle_engine(settings.throttle, settings.cache)
        _engine_config = config
        if previous is not None:
            previous.close()

    return _engine


def close_throttle_engine() -> None:
    """Close the process-wide engine's cache and drop the engine.

    Called on application shutdown; the next ``get_throttle_engine`` call
    builds a fresh engine.
    """

    global _engine, _engine_config

    engine, _engine, _engine_config = _engine, None, None
    if engine is not None:
        engine.close()
        logger.info("throttle.engine_closed")


def set_throttle_engine(engine: ThrottleEngine | None) -> None:
    """Install a prebuilt engine (or drop the cached one with None)."""

    global _engine, _engine_config

    _engine = engine
    _engine_config = (
        (settings.throttle.model_dump_json(), settings.cache.model_dump_json())
        if engine is not None
        else None
    )


def parse_exempt_paths(paths: str | None) -> set[str]:
    """Parse comma-separated exempt paths into a set.

    Examples:
        >>> sorted(parse_exempt_paths("/health, /metrics"))
        ['/health', '/metrics']
        >>> parse_exempt_paths("")
        set()
    """

    if not paths:
        return set()
    return {p.strip() for p in paths.split(",") if p.strip()}


def is_exempt_path(path: str, exempt: set[str]) -> bool:
    """Return True when ``path`` bypasses throttling.

    Entries match exactly, except those ending in ``/`` which match every
    path below them (``/v1/admin/`` covers ``/v1/admin/clients/abc``).

    Examples:
        >>> is_exempt_path("/v1/admin/signature", {"/health", "/v1/admin/"})
        True
        >>> is_exempt_path("/healthz", {"/health"})
        False
    """

    if path in exempt:
        return True
    return any(entry.endswith("/") and path.startswith(entry) for entry in exempt)


def rate_limit_headers(decision: Allowed | RateLimited) -> dict[str, str]:
    """Build X-RateLimit-* (and Retry-After when denied) headers."""

    if isinstance(decision, RateLimited):
        return {
            "Retry-After": str(decision.retry_after),
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(decision.reset_at),
        }
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at),
    }


def rate_limited_response(decision: RateLimited) -> Response:
    return PlainTextResponse(
        RATE_LIMITED_MESSAGE,
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        headers=rate_limit_headers(decision),
    )


def blacklisted_response() -> Response:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": BLACKLISTED_MESSAGE},
    )


def storage_unavailable_response(exc: StorageAppError) -> Response:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": {
                "code": exc.code,
                "message": "Rate limiting is temporarily unavailable. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


async def throttle_middleware(request: Request, call_next) -> Response:
    """HTTP middleware applying per-client throttling.

    Exempt paths and a disabled throttle (THROTTLE_ENABLED=false) pass
    straight through. The engine call runs in the threadpool because cache
    backends (Redis) do blocking I/O.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The handler's response with rate limit headers, or a
            429/403/503 response produced here.
    """

    cfg = settings.throttle
    if not cfg.enabled or is_exempt_path(request.url.path, parse_exempt_paths(cfg.exempt_paths)):
        return await call_next(request)

    engine = get_throttle_engine()
    signature = request_signature(request)
    client = describe_client(request)

    try:
        decision = await run_in_threadpool(engine.decide, signature, client)
    except StorageAppError as exc:
        logger.error(
            "throttle.storage_unavailable",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "fail_open": cfg.fail_open,
                "request_path": request.url.path,
            },
        )
        if cfg.fail_open:
            return await call_next(request)
        return storage_unavailable_response(exc)

    if isinstance(decision, Blacklisted):
        return blacklisted_response()
    if isinstance(decision, RateLimited):
        return rate_limited_response(decision)

    response: Response = await call_next(request)
    response.headers.update(rate_limit_headers(decision))
    return response
