from __future__ import annotations

from gatekeeper.api.routes.admin import router as admin_router
from gatekeeper.api.routes.health import router as health_router
from gatekeeper.api.routes.ping import router as ping_router

__all__ = ["admin_router", "health_router", "ping_router"]
