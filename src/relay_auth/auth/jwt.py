"""
relay_auth.auth.jwt

Bearer tokens for the control API.

Responsibilities:
- Derive the token configuration (including clock-skew leeway) from settings.
- Issue short-lived operator tokens carrying a role list and a unique `jti`.
- Decode tokens with strict claim requirements (iss/aud/exp/iat/sub).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from relay_auth.settings import Settings

DEFAULT_TOKEN_TTL = timedelta(minutes=15)
_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str
    leeway: timedelta = timedelta(0)

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
            leeway=timedelta(seconds=settings.jwt_leeway_seconds),
        )


class JwtValidationError(Exception):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: str,
    roles: list[str],
    ttl: timedelta = DEFAULT_TOKEN_TTL,
) -> str:
    issued = datetime.now(tz=UTC)
    claims: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": subject,
        "jti": uuid.uuid4().hex,
        "roles": sorted(set(roles)),
        "iat": int(issued.timestamp()),
        "exp": int((issued + ttl).timestamp()),
    }
    return jwt.encode(claims, cfg.secret, algorithm=cfg.alg)


def decode_token(*, cfg: JwtConfig, token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            leeway=cfg.leeway,
            options={"require": _REQUIRED_CLAIMS},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Shared-secret HS256 assumes the control API and its token issuer run on one trusted host.
