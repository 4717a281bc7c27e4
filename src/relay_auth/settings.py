"""
relay_auth.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide env-driven settings for the coordinator, the operator API and logging.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELAY_AUTH_", case_sensitive=False)

    # Environment toggles dev-only routes such as token minting.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "relay-auth"
    log_level: str = "INFO"
    log_json: bool = True

    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # Operator API auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "relay-auth"
    jwt_audience: str = "relay-auth-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    # Tolerated clock skew between token issuer and this service.
    jwt_leeway_seconds: int = Field(default=30, ge=0)

    # Preferences: one JSON blob under `storage_key`; file-backed only when a path is set.
    storage_key: str = "relay-auth-preferences"
    preferences_path: Path | None = None

    # Challenges older than this are no longer surfaced as pending.
    challenge_ttl: timedelta = timedelta(minutes=5)

    # Pre-authentication gate
    preauth_timeout: float = Field(default=5.0, gt=0)
    preauth_concurrency: int = Field(default=5, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `challenge_ttl` accepts ISO-8601 durations or HH:MM:SS from the environment
# (e.g. RELAY_AUTH_CHALLENGE_TTL=PT2M).
