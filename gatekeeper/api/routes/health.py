from __future__ import annotations

from fastapi import APIRouter

from gatekeeper.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Exempt from throttling by default so load balancers are never denied.
    Does not touch the counter cache.

    Returns:
        dict: ``status`` plus the configured cache backend.
    """

    return {"status": "ok", "cache_backend": settings.cache.backend}
