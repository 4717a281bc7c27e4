"""
relay_auth.auth.deps

FastAPI dependencies for control API authentication and authorization.

Responsibilities:
- Turn a bearer token into an `Operator`.
- Enforce viewer/operator roles via a reusable dependency factory.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from relay_auth.api.deps import settings_dep
from relay_auth.auth.jwt import JwtConfig, JwtValidationError, decode_token
from relay_auth.auth.models import Operator
from relay_auth.settings import Settings

_bearer = HTTPBearer(auto_error=False)


async def get_operator(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Operator:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        claims = decode_token(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(claims.get("sub", ""))
    roles = claims.get("roles", [])
    if not subject or not isinstance(roles, list):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token claims")

    structlog.contextvars.bind_contextvars(operator=subject)
    return Operator(subject=subject, roles=frozenset(str(r) for r in roles))


def require_roles(*required: str):
    required_set = frozenset(required)

    def _dep(operator: Operator = Depends(get_operator)) -> Operator:
        if not operator.has_roles(required_set):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return operator

    return _dep
