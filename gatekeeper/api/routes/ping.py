from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Sample"])


@router.get("/ping")
async def ping() -> dict:
    """Throttled sample endpoint; responses carry X-RateLimit-* headers."""

    return {"message": "pong"}
