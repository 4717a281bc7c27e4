"""
relay_auth.coordinator.state_machine

Pure AUTH state machine for a single relay.

Responsibilities:
- Define the events fed in by relay signals and user actions.
- Map (current status, event) to a new status plus two side-effect hints:
  `should_auto_auth` (preference is "always") and `clear_challenge`.
"""

from __future__ import annotations

from dataclasses import dataclass

from relay_auth.coordinator.models import AuthPreference, AuthStatus


@dataclass(frozen=True, slots=True)
class ChallengeReceived:
    challenge: str
    preference: AuthPreference | None = None


@dataclass(frozen=True, slots=True)
class UserAccepted:
    pass


@dataclass(frozen=True, slots=True)
class UserRejected:
    pass


@dataclass(frozen=True, slots=True)
class AuthSuccess:
    pass


@dataclass(frozen=True, slots=True)
class AuthFailed:
    pass


@dataclass(frozen=True, slots=True)
class Disconnected:
    pass


AuthEvent = ChallengeReceived | UserAccepted | UserRejected | AuthSuccess | AuthFailed | Disconnected


@dataclass(frozen=True, slots=True)
class TransitionResult:
    new_status: AuthStatus
    should_auto_auth: bool = False
    clear_challenge: bool = False


# Statuses where nothing is in flight; a fresh challenge restarts the handshake.
_IDLE_STATUSES = frozenset(
    {
        AuthStatus.none,
        AuthStatus.authenticated,
        AuthStatus.failed,
        AuthStatus.rejected,
    }
)


def transition_auth_state(current: AuthStatus, event: AuthEvent) -> TransitionResult:
    """
    Total over every (status, event) pair; unknown combinations leave the status unchanged
    with both hints false.
    """

    if isinstance(event, Disconnected):
        return TransitionResult(AuthStatus.none, clear_challenge=True)

    if current in _IDLE_STATUSES:
        if isinstance(event, ChallengeReceived):
            return _on_challenge(event.preference)
        return TransitionResult(current)

    if current == AuthStatus.challenge_received:
        if isinstance(event, UserAccepted):
            return TransitionResult(AuthStatus.authenticating)
        if isinstance(event, UserRejected):
            return TransitionResult(AuthStatus.rejected, clear_challenge=True)
        if isinstance(event, AuthSuccess):
            # Relay confirmed auth while the prompt was still open.
            return TransitionResult(AuthStatus.authenticated, clear_challenge=True)
        return TransitionResult(current)

    if current == AuthStatus.authenticating:
        if isinstance(event, AuthSuccess):
            return TransitionResult(AuthStatus.authenticated, clear_challenge=True)
        if isinstance(event, AuthFailed):
            return TransitionResult(AuthStatus.failed, clear_challenge=True)
        return TransitionResult(current)

    return TransitionResult(current)


def _on_challenge(preference: AuthPreference | None) -> TransitionResult:
    if preference == AuthPreference.always:
        return TransitionResult(AuthStatus.authenticating, should_auto_auth=True)
    if preference == AuthPreference.never:
        return TransitionResult(AuthStatus.rejected, clear_challenge=True)
    return TransitionResult(AuthStatus.challenge_received)


# --- Module Notes -----------------------------------------------------------
# `should_auto_auth` is a hint only: the manager still checks signer availability before
# it actually starts an authentication attempt.
