"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) to
improve testability compared to a monolithic main.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from gatekeeper.api.routes import admin_router, health_router, ping_router
from gatekeeper.core.config import settings
from gatekeeper.core.exception_handlers import setup_exception_handlers
from gatekeeper.core.logging import configure_logging
from gatekeeper.core.middleware import request_id_middleware
from gatekeeper.core.openapi import apply_openapi_customizations
from gatekeeper.core.throttle import close_throttle_engine, get_throttle_engine, throttle_middleware


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the throttle cache (Redis connection pool) on shutdown."""
    yield
    close_throttle_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    The throttle engine is built eagerly so an invalid configuration (for
    example THROTTLE_BLACKLIST_THRESHOLD=0) fails at startup with
    ConfigurationAppError instead of on the first request.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    if settings.throttle.enabled:
        get_throttle_engine()

    app = FastAPI(
        title="Gatekeeper",
        description=(
            "Per-client request throttle. Requests are bucketed by source address "
            "and User-Agent, counted in fixed windows, answered with 429 when over "
            "the limit and with 403 once a client is blacklisted for recurring "
            "violations."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware: last registered runs outermost, so request ids wrap throttling
    app.middleware("http")(throttle_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(ping_router, prefix="/v1")
    app.include_router(admin_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
