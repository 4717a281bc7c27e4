"""
relay_auth.api.routers.dev_auth

Local token minting for exercising the control API without an identity provider.
"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_404_NOT_FOUND

from relay_auth.api.deps import settings_dep
from relay_auth.auth.jwt import DEFAULT_TOKEN_TTL, JwtConfig, issue_token
from relay_auth.auth.models import VIEWER_ROLE
from relay_auth.observability.logging import get_logger
from relay_auth.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/v1/dev", tags=["dev"])


class DevTokenRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=256)
    roles: list[str] = Field(default_factory=lambda: [VIEWER_ROLE])
    ttl_minutes: int = Field(
        default=int(DEFAULT_TOKEN_TTL.total_seconds() // 60), ge=1, le=24 * 60
    )


class DevToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


@router.post("/token", response_model=DevToken)
async def mint_dev_token(
    body: DevTokenRequest,
    settings: Settings = Depends(settings_dep),
) -> DevToken:
    # The router is not mounted in prod; this guards apps assembled by hand.
    if settings.env == "prod":
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not found")

    ttl = timedelta(minutes=body.ttl_minutes)
    token = issue_token(
        cfg=JwtConfig.from_settings(settings), subject=body.subject, roles=body.roles, ttl=ttl
    )
    log.info("dev_token_issued", subject=body.subject, roles=sorted(body.roles))
    return DevToken(access_token=token, expires_in=int(ttl.total_seconds()))
