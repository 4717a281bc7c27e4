"""
relay_auth.services.relay_auth_manager

Relay authentication coordinator (state owner).

Responsibilities:
- Own the per-relay state table, the monitors, the preference store and the
  session-rejection set.
- Apply state-machine transitions for relay signals and user actions.
- Run manual and automatic authentication attempts against relays.
- Derive and emit the `states` and `pending_challenges` aggregate feeds.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from functools import partial
from types import MappingProxyType
from typing import Any

from relay_auth.contracts import (
    AuthRelay,
    KeyValueStorage,
    RelayPool,
    Signer,
    normalize_relay_url,
)
from relay_auth.coordinator.errors import NoChallengeError, NoSignerError, NotMonitoredError
from relay_auth.coordinator.models import (
    AuthPreference,
    AuthStatus,
    PendingChallenge,
    RelayAuthState,
)
from relay_auth.coordinator.state_machine import (
    AuthEvent,
    AuthFailed,
    ChallengeReceived,
    TransitionResult,
    UserAccepted,
    UserRejected,
    transition_auth_state,
)
from relay_auth.feeds import Subscription, ValueFeed
from relay_auth.observability.logging import get_logger
from relay_auth.services.preferences import PreferenceStore
from relay_auth.services.relay_monitor import RelayMonitor
from relay_auth.settings import Settings
from relay_auth.storage import JsonFileStorage

log = get_logger(__name__)

DEFAULT_STORAGE_KEY = "relay-auth-preferences"
DEFAULT_CHALLENGE_TTL = timedelta(minutes=5)

StatesSnapshot = Mapping[str, RelayAuthState]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class RelayAuthManager:
    """
    Tracks AUTH challenges for every monitored relay and drives the auth lifecycle:
    prompts, auto-auth ("always"), auto-reject ("never"), signer lifecycle and expiry.

    All methods must be called from the event loop thread. Automatic authentication
    schedules tasks on the running loop.
    """

    def __init__(
        self,
        *,
        signer: ValueFeed[Signer | None],
        pool: RelayPool | None = None,
        storage: KeyValueStorage | None = None,
        initial_relays: Iterable[AuthRelay] = (),
        storage_key: str = DEFAULT_STORAGE_KEY,
        challenge_ttl: timedelta = DEFAULT_CHALLENGE_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._challenge_ttl = challenge_ttl
        self._clock = clock or _utcnow

        self._states: dict[str, RelayAuthState] = {}
        self._monitors: dict[str, RelayMonitor] = {}
        self._session_rejections: set[str] = set()
        self._attempts: set[asyncio.Task[None]] = set()
        self._expiry_timer: asyncio.TimerHandle | None = None
        self._signer: Signer | None = None
        self._destroyed = False

        self.states: ValueFeed[StatesSnapshot] = ValueFeed(MappingProxyType({}))
        self.pending_challenges: ValueFeed[tuple[PendingChallenge, ...]] = ValueFeed(())

        # Preferences must be loaded before any relay is monitored.
        self._preferences = PreferenceStore(storage=storage, storage_key=storage_key)

        self._subscriptions: list[Subscription] = [signer.subscribe(self._on_signer)]
        if pool is not None:
            self._subscriptions.append(pool.added.subscribe(self.monitor_relay))
            self._subscriptions.append(
                pool.removed.subscribe(lambda relay: self.unmonitor_relay(relay.url))
            )

        for relay in initial_relays:
            self.monitor_relay(relay)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        signer: ValueFeed[Signer | None],
        pool: RelayPool | None = None,
        storage: KeyValueStorage | None = None,
        initial_relays: Iterable[AuthRelay] = (),
    ) -> RelayAuthManager:
        if storage is None and settings.preferences_path is not None:
            storage = JsonFileStorage(settings.preferences_path)
        return cls(
            signer=signer,
            pool=pool,
            storage=storage,
            initial_relays=initial_relays,
            storage_key=settings.storage_key,
            challenge_ttl=settings.challenge_ttl,
        )

    # --- Relay tracking ----------------------------------------------------

    def monitor_relay(self, relay: AuthRelay) -> None:
        """
        Start tracking a relay. Calling it again for a tracked URL is a no-op.
        """

        if self._destroyed:
            raise RuntimeError("RelayAuthManager has been destroyed")

        url = normalize_relay_url(relay.url)
        if url in self._monitors:
            return

        self._states[url] = RelayAuthState(url=url, connected=bool(relay.connectivity.value))
        monitor = RelayMonitor(
            url=url,
            relay=relay,
            read_state=partial(self._states.get, url),
            read_preference=partial(self._preferences.get, url),
            set_connected=partial(self._set_connected, url),
            dispatch=partial(self._dispatch, url),
        )
        self._monitors[url] = monitor
        log.info("relay_monitored", relay=url)

        self._emit()
        monitor.start()

    def unmonitor_relay(self, url: str) -> None:
        key = self._resolve(url)
        monitor = self._monitors.pop(key, None)
        if monitor is not None:
            monitor.stop()
        if self._states.pop(key, None) is not None:
            log.info("relay_unmonitored", relay=key)
        if not self._destroyed:
            self._emit()

    def get_relay_state(self, url: str) -> RelayAuthState | None:
        return self._states.get(self._resolve(url))

    def get_all_states(self) -> StatesSnapshot:
        return MappingProxyType(dict(self._states))

    # --- Preferences -------------------------------------------------------

    def set_preference(self, url: str, preference: AuthPreference) -> None:
        self._preferences.set(self._resolve(url), preference)
        self._emit()

    def get_preference(self, url: str) -> AuthPreference | None:
        return self._preferences.get(self._resolve(url))

    def get_all_preferences(self) -> Mapping[str, AuthPreference]:
        return self._preferences.all()

    # --- Signer ------------------------------------------------------------

    def has_signer_available(self) -> bool:
        return self._signer is not None

    # --- User actions ------------------------------------------------------

    async def authenticate(self, url: str) -> None:
        """
        Sign the pending challenge for `url` with the current signer.

        Raises `NotMonitoredError`, `NoChallengeError` or `NoSignerError` before anything is
        attempted. The final `authenticated` status arrives through the relay's own
        authenticated feed; a failed attempt sets `failed` and re-raises the relay's error.
        """

        key = self._resolve(url)
        state = self._states.get(key)
        monitor = self._monitors.get(key)
        if state is None or monitor is None:
            raise NotMonitoredError(url)
        if state.challenge is None:
            raise NoChallengeError(url)
        signer = self._signer
        if signer is None:
            raise NoSignerError(url)

        # Optimistic: show "authenticating" while the signature is produced and sent.
        self._dispatch(key, UserAccepted())

        try:
            await monitor.relay.authenticate(signer)
        except Exception as e:
            log.warning("relay_auth_failed", relay=key, error=str(e))
            self._record_failure(key)
            raise

    def reject(self, url: str, remember_for_session: bool = False) -> None:
        key = self._resolve(url)
        if key not in self._states:
            return

        # Remembered rejections are scoped to the relay URL, not to one challenge value.
        if remember_for_session:
            self._session_rejections.add(key)
        self._dispatch(key, UserRejected())

    # --- Derived views -----------------------------------------------------

    def get_pending_challenges(self) -> tuple[PendingChallenge, ...]:
        # Lazy recomputation so expiry is honoured even if no timer fired yet.
        return self._derive_pending(self._clock())

    # --- Lifecycle ---------------------------------------------------------

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True

        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()

        for monitor in self._monitors.values():
            monitor.stop()
        self._monitors.clear()
        self._states.clear()

        if self._expiry_timer is not None:
            self._expiry_timer.cancel()
            self._expiry_timer = None
        for task in tuple(self._attempts):
            task.cancel()
        self._attempts.clear()

        self.states.complete()
        self.pending_challenges.complete()
        log.info("relay_auth_manager_destroyed")

    # --- Internals ---------------------------------------------------------

    def _resolve(self, url: str) -> str:
        if url in self._states:
            return url
        return normalize_relay_url(url)

    def _on_signer(self, signer: Signer | None) -> None:
        had_signer = self._signer is not None
        self._signer = signer
        if had_signer != (signer is not None):
            log.info("signer_changed", available=signer is not None)

        if signer is not None and not had_signer:
            self._resume_auto_auth()

        self._emit()

    def _set_connected(self, url: str, connected: bool) -> None:
        state = self._states.get(url)
        if state is None or state.connected == connected:
            return
        self._states[url] = replace(state, connected=connected)
        self._emit()

    def _dispatch(self, url: str, event: AuthEvent) -> TransitionResult | None:
        state = self._states.get(url)
        if state is None:
            return None

        result = transition_auth_state(state.status, event)
        if (
            result.should_auto_auth
            and self._signer is None
            and isinstance(event, ChallengeReceived)
        ):
            # No signer yet: hold the relay at the prompt stage until one appears.
            result = transition_auth_state(
                state.status, replace(event, preference=AuthPreference.ask)
            )

        self._states[url] = self._apply(state, event, result)
        if result.new_status != state.status:
            log.info(
                "relay_auth_transition",
                relay=url,
                auth_event=type(event).__name__,
                from_status=str(state.status),
                to_status=str(result.new_status),
            )

        if result.should_auto_auth:
            self._start_auto_auth(url)

        self._emit()
        return result

    def _apply(
        self, state: RelayAuthState, event: AuthEvent, result: TransitionResult
    ) -> RelayAuthState:
        if result.clear_challenge:
            return replace(
                state, status=result.new_status, challenge=None, challenge_received_at=None
            )
        if isinstance(event, ChallengeReceived) and event.challenge != state.challenge:
            # A reissued challenge replaces the stored one even when the status stays put.
            return replace(
                state,
                status=result.new_status,
                challenge=event.challenge,
                challenge_received_at=self._clock(),
            )
        return replace(state, status=result.new_status)

    def _record_failure(self, url: str) -> None:
        state = self._states.get(url)
        if self._destroyed or state is None:
            return
        # A thrown attempt wins over whatever the relay signalled while it was in flight.
        self._states[url] = replace(
            state, status=AuthStatus.failed, challenge=None, challenge_received_at=None
        )
        if state.status != AuthStatus.failed:
            log.info(
                "relay_auth_transition",
                relay=url,
                auth_event=AuthFailed.__name__,
                from_status=str(state.status),
                to_status=str(AuthStatus.failed),
            )
        self._emit()

    def _resume_auto_auth(self) -> None:
        for url, state in tuple(self._states.items()):
            if state.status != AuthStatus.challenge_received or state.challenge is None:
                continue
            if self._preferences.get(url) != AuthPreference.always:
                continue
            self._dispatch(url, UserAccepted())
            self._start_auto_auth(url)

    def _start_auto_auth(self, url: str) -> None:
        monitor = self._monitors.get(url)
        signer = self._signer
        if monitor is None or signer is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Nothing could ever await the attempt; fail it instead of leaving it in flight.
            log.warning("relay_auto_auth_failed", relay=url, error="no running event loop")
            self._record_failure(url)
            return

        log.info("relay_auto_auth_started", relay=url)
        # Invoke now so the relay sees the attempt immediately; settle on the loop.
        try:
            pending = monitor.relay.authenticate(signer)
        except Exception as e:
            log.warning("relay_auto_auth_failed", relay=url, error=str(e))
            self._record_failure(url)
            return
        task = loop.create_task(self._settle_auto_auth(url, pending))
        self._attempts.add(task)
        task.add_done_callback(self._attempts.discard)

    async def _settle_auto_auth(self, url: str, pending: Any) -> None:
        try:
            await pending
        except Exception as e:
            # No caller to report to: record the failure and move on.
            log.warning("relay_auto_auth_failed", relay=url, error=str(e))
            self._record_failure(url)

    def _derive_pending(self, now: datetime) -> tuple[PendingChallenge, ...]:
        if self._signer is None:
            return ()

        pending: list[PendingChallenge] = []
        for state in self._states.values():
            if (
                state.status != AuthStatus.challenge_received
                or not state.connected
                or state.challenge is None
                or state.challenge_received_at is None
            ):
                continue
            if self._preferences.get(state.url) == AuthPreference.never:
                continue
            if state.url in self._session_rejections:
                continue
            if now - state.challenge_received_at >= self._challenge_ttl:
                continue
            pending.append(
                PendingChallenge(
                    relay_url=state.url,
                    challenge=state.challenge,
                    received_at=state.challenge_received_at,
                )
            )
        return tuple(pending)

    def _emit(self) -> None:
        if self._destroyed:
            return
        now = self._clock()
        pending = self._derive_pending(now)
        self.states.push(MappingProxyType(dict(self._states)))
        self.pending_challenges.push(pending)
        self._schedule_expiry(now, pending)

    def _schedule_expiry(self, now: datetime, pending: tuple[PendingChallenge, ...]) -> None:
        if self._expiry_timer is not None:
            self._expiry_timer.cancel()
            self._expiry_timer = None
        if not pending:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside a loop only the lazy read path enforces expiry.
            return

        earliest = min(p.received_at for p in pending) + self._challenge_ttl
        delay = max((earliest - now).total_seconds(), 0.0)
        self._expiry_timer = loop.call_later(delay, self._on_expiry)

    def _on_expiry(self) -> None:
        self._expiry_timer = None
        self._emit()


# --- Module Notes -----------------------------------------------------------
# The pending view is recomputed from scratch on every emission (state table, preferences,
# session rejections, signer, clock) rather than patched incrementally. Expiry needs no
# relay signal: a loop timer armed for the earliest expiry triggers a re-emission.
