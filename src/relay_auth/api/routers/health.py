"""
relay_auth.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Liveness probe (`/healthz`).
- Readiness probe (`/readyz`): the coordinator is live; reports signer availability.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from relay_auth.api.deps import manager_dep
from relay_auth.services.relay_auth_manager import RelayAuthManager

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(manager: RelayAuthManager = Depends(manager_dep)) -> dict[str, Any]:
    # A destroyed manager has completed its feeds and will not react to relays anymore.
    if manager.states.completed:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Manager stopped")
    return {
        "status": "ready",
        "signer_available": manager.has_signer_available(),
        "relays": len(manager.get_all_states()),
    }
