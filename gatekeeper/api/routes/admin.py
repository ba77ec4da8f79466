"""Read-only admin endpoints for throttle state.

Blacklist removal is deliberately absent: a blacklisted client is cleared
by deleting its key from the cache backend directly.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from gatekeeper.core.auth import verify_admin_key
from gatekeeper.core.throttle import get_throttle_engine
from gatekeeper.schemas.throttle import ClientStatus, SignatureResponse
from gatekeeper.services.signature import derive_signature

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_key)],
)


@router.get("/signature", response_model=SignatureResponse)
async def get_signature(
    address: str = Query("", description="Client source address."),
    user_agent: str = Query("", description="Client User-Agent header."),
) -> SignatureResponse:
    """Derive the signature an address/user-agent pair is throttled under."""

    return SignatureResponse(signature=derive_signature(address, user_agent))


@router.get("/clients/{signature}", response_model=ClientStatus)
async def get_client_status(signature: str) -> ClientStatus:
    """Inspect window, violation and blacklist state of a signature.

    Raises:
        StorageAppError: Rendered as 503 when the cache is unavailable.
    """

    engine = get_throttle_engine()
    return await run_in_threadpool(engine.inspect, signature)
