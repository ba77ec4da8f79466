"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- API Key security scheme (``X-API-Key``) applied to admin operations only
- The 429/403 responses every throttled operation can return

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from gatekeeper.core.config import settings
from gatekeeper.core.throttle import is_exempt_path, parse_exempt_paths

_THROTTLE_RESPONSES: Dict[str, Dict[str, Any]] = {
    "429": {
        "description": "Rate limit exceeded. See Retry-After and X-RateLimit-* headers.",
    },
    "403": {
        "description": "Client blacklisted after repeated rate limit violations.",
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Admin API key (APP_ADMIN_API_KEYS).",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {"name": "Admin", "description": "Inspection of per-client throttle state."},
            {"name": "Sample", "description": "Throttled sample endpoints."},
            {"name": "Health", "description": "Liveness checks."},
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        exempt = parse_exempt_paths(settings.throttle.exempt_paths)
        for path, methods in schema.get("paths", {}).items():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                if "/admin/" in path:
                    method_obj["security"] = [{"ApiKeyAuth": []}]
                if settings.throttle.enabled and not is_exempt_path(path, exempt):
                    responses = method_obj.setdefault("responses", {})
                    for code, body in _THROTTLE_RESPONSES.items():
                        responses.setdefault(code, body)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
