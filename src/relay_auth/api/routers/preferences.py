from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from relay_auth.api.deps import manager_dep
from relay_auth.auth.deps import require_roles
from relay_auth.auth.models import OPERATOR_ROLE, VIEWER_ROLE
from relay_auth.coordinator.models import AuthPreference
from relay_auth.services.relay_auth_manager import RelayAuthManager

router = APIRouter(prefix="/v1/preferences", tags=["preferences"])


class PreferenceUpdate(BaseModel):
    url: str = Field(min_length=1, max_length=2048)
    preference: AuthPreference


@router.get(
    "",
    response_model=dict[str, AuthPreference],
    dependencies=[Depends(require_roles(VIEWER_ROLE))],
)
async def list_preferences(
    manager: RelayAuthManager = Depends(manager_dep),
) -> dict[str, AuthPreference]:
    return dict(manager.get_all_preferences())


@router.put(
    "",
    response_model=dict[str, AuthPreference],
    dependencies=[Depends(require_roles(OPERATOR_ROLE))],
)
async def set_preference(
    body: PreferenceUpdate,
    manager: RelayAuthManager = Depends(manager_dep),
) -> dict[str, AuthPreference]:
    manager.set_preference(body.url, body.preference)
    return dict(manager.get_all_preferences())
