"""
relay_auth.coordinator.models

Value types shared by the state machine, the manager and the API layer.

Responsibilities:
- Enumerate AUTH statuses and per-relay preferences.
- Define the per-relay state record and the derived pending-challenge record.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime


class AuthStatus(enum.StrEnum):
    none = "none"
    challenge_received = "challenge_received"
    authenticating = "authenticating"
    authenticated = "authenticated"
    failed = "failed"
    rejected = "rejected"


class AuthPreference(enum.StrEnum):
    # Values are persisted in the preference blob; treat as stable storage contract.
    ask = "ask"
    always = "always"
    never = "never"


@dataclass(frozen=True, slots=True)
class RelayAuthState:
    """
    Auth view of one monitored relay. Replaced (never mutated) on every change.
    """

    url: str
    status: AuthStatus = AuthStatus.none
    challenge: str | None = None
    challenge_received_at: datetime | None = None
    connected: bool = False


@dataclass(frozen=True, slots=True)
class PendingChallenge:
    relay_url: str
    challenge: str
    received_at: datetime


# --- Module Notes -----------------------------------------------------------
# Frozen records let `states` emissions be handed to subscribers without defensive copies.
