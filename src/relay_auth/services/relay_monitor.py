"""
relay_auth.services.relay_monitor

Per-relay subscription bundle.

Responsibilities:
- Subscribe to a relay's connectivity, challenge and authenticated feeds.
- Translate raw signal values into state-machine events for the manager.
- Own the three cancellation handles so the manager can release them deterministically.
"""

from __future__ import annotations

from collections.abc import Callable

from relay_auth.contracts import AuthRelay
from relay_auth.coordinator.models import AuthPreference, RelayAuthState
from relay_auth.coordinator.state_machine import (
    AuthEvent,
    AuthSuccess,
    ChallengeReceived,
    Disconnected,
)
from relay_auth.feeds import Subscription
from relay_auth.observability.logging import relay_logger


class RelayMonitor:
    def __init__(
        self,
        *,
        url: str,
        relay: AuthRelay,
        read_state: Callable[[], RelayAuthState | None],
        read_preference: Callable[[], AuthPreference | None],
        set_connected: Callable[[bool], None],
        dispatch: Callable[[AuthEvent], None],
    ) -> None:
        self.url = url
        self.relay = relay
        self._read_state = read_state
        self._read_preference = read_preference
        self._set_connected = set_connected
        self._dispatch = dispatch
        self._subscriptions: list[Subscription] = []
        self._log = relay_logger(__name__, url)

    def start(self) -> None:
        if self._subscriptions:
            return
        # Value feeds replay their current value, so an already-challenged relay is picked up here.
        self._subscriptions = [
            self.relay.connectivity.subscribe(self._on_connectivity),
            self.relay.challenge.subscribe(self._on_challenge),
            self.relay.authenticated.subscribe(self._on_authenticated),
        ]

    def stop(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for sub in subscriptions:
            sub.unsubscribe()

    def _on_connectivity(self, connected: bool) -> None:
        self._log.debug("relay_connectivity", connected=bool(connected))
        self._set_connected(bool(connected))
        if not connected:
            self._dispatch(Disconnected())

    def _on_challenge(self, challenge: str | None) -> None:
        state = self._read_state()
        if state is None or not challenge or challenge == state.challenge:
            return
        self._log.debug("relay_challenge_seen", challenge=challenge)
        self._dispatch(ChallengeReceived(challenge=challenge, preference=self._read_preference()))

    def _on_authenticated(self, authenticated: bool) -> None:
        if authenticated:
            self._dispatch(AuthSuccess())


# --- Module Notes -----------------------------------------------------------
# The monitor never writes the state table itself; every change goes through the manager.
