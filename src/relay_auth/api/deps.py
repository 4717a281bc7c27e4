"""
relay_auth.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide the settings and the `RelayAuthManager` stashed on `app.state` by `create_app`.
"""

from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from relay_auth.services.relay_auth_manager import RelayAuthManager
from relay_auth.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def manager_dep(request: Request) -> RelayAuthManager:
    manager: RelayAuthManager | None = getattr(request.app.state, "manager", None)
    if manager is None:
        raise HTTPException(
            status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Relay auth manager unavailable"
        )
    return manager


# --- Module Notes -----------------------------------------------------------
# The manager is process-wide state; routers never construct one themselves.
