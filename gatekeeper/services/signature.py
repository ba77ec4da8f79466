"""Client signature derivation.

A signature buckets requests by (source address, user agent). It is a
best-effort fingerprint for throttling, not an identity: every client behind
the same NAT with the same browser shares one budget.
"""

from __future__ import annotations

import hashlib

from fastapi import Request

from gatekeeper.adapters.events import ClientDescriptor

_SEPARATOR = "\x00"


def derive_signature(source_address: str | None, user_agent: str | None) -> str:
    """Map an address and user agent to a stable 64-character hex token.

    Missing values count as empty strings, so a proxy that strips the
    client address degrades every such request into one shared bucket
    rather than failing.

    Args:
        source_address: Remote address as seen by the server.
        user_agent: User-Agent header value.

    Returns:
        Hex-encoded SHA-256 digest.

    Examples:
        >>> derive_signature("127.0.0.1", "curl/8.0") == derive_signature("127.0.0.1", "curl/8.0")
        True
        >>> len(derive_signature(None, None))
        64
    """

    material = f"{source_address or ''}{_SEPARATOR}{user_agent or ''}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def request_signature(request: Request) -> str:
    """Derive the signature of an incoming request."""

    client_host = request.client.host if request.client else None
    return derive_signature(client_host, request.headers.get("user-agent"))


def describe_client(request: Request) -> ClientDescriptor:
    """Build the logging descriptor of an incoming request."""

    return ClientDescriptor(
        address=request.client.host if request.client else "unknown",
        user_agent=request.headers.get("user-agent", ""),
        method=request.method,
        path=request.url.path,
    )
