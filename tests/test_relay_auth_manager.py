"""
tests.test_relay_auth_manager

Behavioural tests for the relay auth coordinator.

Responsibilities:
- Relay monitoring lifecycle, challenge detection and URL resolution.
- Manual authentication, rejection, auto-auth and auto-reject.
- Pending-challenge gating (preference, session rejection, signer, TTL).
- Aggregate feeds and shutdown.
"""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from types import MappingProxyType

import pytest
import structlog
import structlog.testing

from relay_auth.coordinator.errors import NoChallengeError, NoSignerError, NotMonitoredError
from relay_auth.coordinator.models import AuthPreference, AuthStatus
from relay_auth.services import relay_auth_manager
from relay_auth.storage import MemoryStorage
from tests.helpers import RELAY_URL, FakeRelay, FakeSigner, Harness, drain


# --- Monitoring ------------------------------------------------------------


@pytest.mark.asyncio
async def test_monitors_relays_added_to_pool_and_drops_removed(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()

    harness.pool.added.push(relay)
    state = manager.get_relay_state(RELAY_URL)
    assert state is not None
    assert state.status == AuthStatus.none
    assert state.connected is True

    harness.pool.removed.push(relay)
    assert manager.get_relay_state(RELAY_URL) is None


@pytest.mark.asyncio
async def test_monitors_initial_relays(harness: Harness) -> None:
    manager = harness.build(initial_relays=[FakeRelay("wss://initial.relay.com")])
    assert manager.get_relay_state("wss://initial.relay.com") is not None


@pytest.mark.asyncio
async def test_monitor_relay_is_idempotent(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    manager.monitor_relay(relay)
    assert len(manager.get_all_states()) == 1


@pytest.mark.asyncio
async def test_unmonitor_removes_the_entry_entirely(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    manager.unmonitor_relay(RELAY_URL)

    assert RELAY_URL not in manager.get_all_states()
    # Signals from a released relay no longer reach the manager.
    relay.challenge.push("late")
    assert manager.get_all_states() == {}


@pytest.mark.asyncio
async def test_url_lookup_tolerates_formatting(harness: Harness) -> None:
    manager = harness.build()
    manager.monitor_relay(FakeRelay())
    assert manager.get_relay_state("wss://relay.example.com/") is not None
    assert manager.get_relay_state("relay.example.com") is not None


@pytest.mark.asyncio
async def test_tracks_connection_state(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay(connected=False)
    manager.monitor_relay(relay)
    assert manager.get_relay_state(RELAY_URL).connected is False

    relay.connectivity.push(True)
    assert manager.get_relay_state(RELAY_URL).connected is True

    relay.connectivity.push(False)
    assert manager.get_relay_state(RELAY_URL).connected is False


@pytest.mark.asyncio
async def test_picks_up_challenge_present_before_monitoring(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    relay.challenge.push("early")
    manager.monitor_relay(relay)

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.challenge_received
    assert state.challenge == "early"


# --- Challenges ------------------------------------------------------------


@pytest.mark.asyncio
async def test_detects_new_challenge(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)

    relay.challenge.push("test-challenge")

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.challenge_received
    assert state.challenge == "test-challenge"
    assert state.challenge_received_at == harness.clock.now


@pytest.mark.asyncio
async def test_new_challenge_after_rejection_prompts_again(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)

    relay.challenge.push("challenge-1")
    manager.reject(RELAY_URL)
    relay.challenge.push("challenge-2")

    state = manager.get_relay_state(RELAY_URL)
    assert state.challenge == "challenge-2"
    assert state.status == AuthStatus.challenge_received


@pytest.mark.asyncio
async def test_repeated_challenge_value_keeps_original_timestamp(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("same")
    received_at = manager.get_relay_state(RELAY_URL).challenge_received_at

    harness.clock.advance(timedelta(seconds=30))
    relay.challenge.push("same")
    assert manager.get_relay_state(RELAY_URL).challenge_received_at == received_at


@pytest.mark.asyncio
async def test_reissued_challenge_replaces_open_prompt(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)

    relay.challenge.push("c1")
    harness.clock.advance(timedelta(minutes=4))
    relay.challenge.push("c2")
    reissued_at = harness.clock.now
    harness.clock.advance(timedelta(minutes=2))

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.challenge_received
    assert state.challenge == "c2"
    assert state.challenge_received_at == reissued_at
    # The TTL runs from the reissue, not from the first challenge.
    assert [(p.challenge, p.received_at) for p in manager.get_pending_challenges()] == [
        ("c2", reissued_at)
    ]
    manager.destroy()


@pytest.mark.asyncio
async def test_challenge_reissued_mid_attempt_is_signed_next(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c1")
    await manager.authenticate(RELAY_URL)

    relay.challenge.push("c2")

    state = manager.get_relay_state(RELAY_URL)
    assert (state.status, state.challenge) == (AuthStatus.authenticating, "c2")


@pytest.mark.asyncio
async def test_scenario_a_manual_lifecycle(harness: Harness) -> None:
    signer = FakeSigner()
    harness.signer.push(signer)
    manager = harness.build()
    relay = FakeRelay(connected=False)
    manager.monitor_relay(relay)

    relay.connectivity.push(True)
    relay.challenge.push("abc")
    state = manager.get_relay_state(RELAY_URL)
    assert (state.status, state.challenge) == (AuthStatus.challenge_received, "abc")

    await manager.authenticate(RELAY_URL)
    relay.authenticate.assert_called_once_with(signer)
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticating

    relay.authenticated.push(True)
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticated

    relay.connectivity.push(False)
    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.none
    assert state.challenge is None


@pytest.mark.asyncio
async def test_authenticated_signal_while_prompt_open(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    relay.authenticated.push(True)
    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.authenticated
    assert state.challenge is None


# --- Manual authentication -------------------------------------------------


@pytest.mark.asyncio
async def test_status_is_authenticating_while_attempt_in_flight(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    release = asyncio.Event()

    async def slow_auth(_signer) -> None:
        await release.wait()

    relay.authenticate.side_effect = slow_auth
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    attempt = asyncio.create_task(manager.authenticate(RELAY_URL))
    await asyncio.sleep(0)
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticating

    release.set()
    await attempt
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticating


@pytest.mark.asyncio
async def test_authenticate_unknown_relay(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    with pytest.raises(NotMonitoredError, match="not being monitored"):
        await manager.authenticate("wss://unknown.relay.com")


@pytest.mark.asyncio
async def test_authenticate_without_challenge(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    manager.monitor_relay(FakeRelay())
    with pytest.raises(NoChallengeError, match="No auth challenge"):
        await manager.authenticate(RELAY_URL)


@pytest.mark.asyncio
async def test_authenticate_without_signer(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    with pytest.raises(NoSignerError, match="No signer available"):
        await manager.authenticate(RELAY_URL)
    relay.authenticate.assert_not_called()
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.challenge_received


@pytest.mark.asyncio
async def test_relay_side_failure_sets_failed_and_reraises(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    relay.authenticate.side_effect = RuntimeError("auth failed")
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    with pytest.raises(RuntimeError, match="auth failed"):
        await manager.authenticate(RELAY_URL)

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.failed
    assert state.challenge is None


@pytest.mark.asyncio
async def test_thrown_attempt_fails_even_after_relay_signalled_success(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()

    async def confirm_then_raise(_signer) -> None:
        relay.authenticated.push(True)
        raise RuntimeError("late rejection")

    relay.authenticate.side_effect = confirm_then_raise
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    with pytest.raises(RuntimeError, match="late rejection"):
        await manager.authenticate(RELAY_URL)

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.failed
    assert state.challenge is None


@pytest.mark.asyncio
async def test_failed_relay_recovers_on_new_challenge(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    relay.authenticate.side_effect = RuntimeError("nope")
    manager.monitor_relay(relay)
    relay.challenge.push("c1")
    with pytest.raises(RuntimeError):
        await manager.authenticate(RELAY_URL)

    relay.challenge.push("c2")
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.challenge_received


@pytest.mark.asyncio
async def test_authenticating_one_relay_leaves_others_alone(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay1 = FakeRelay("wss://relay1.example.com")
    relay2 = FakeRelay("wss://relay2.example.com")
    manager.monitor_relay(relay1)
    manager.monitor_relay(relay2)
    relay1.challenge.push("challenge-1")
    relay2.challenge.push("challenge-2")

    await manager.authenticate("wss://relay1.example.com")

    assert manager.get_relay_state("wss://relay1.example.com").status == AuthStatus.authenticating
    assert (
        manager.get_relay_state("wss://relay2.example.com").status == AuthStatus.challenge_received
    )
    relay2.authenticate.assert_not_called()


# --- Rejection -------------------------------------------------------------


@pytest.mark.asyncio
async def test_reject_clears_challenge(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    manager.reject(RELAY_URL)

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.rejected
    assert state.challenge is None


@pytest.mark.asyncio
async def test_reject_unknown_relay_is_noop(harness: Harness) -> None:
    manager = harness.build()
    manager.reject("wss://unknown.relay.com", remember_for_session=True)
    assert manager.get_all_states() == {}


@pytest.mark.asyncio
async def test_remembered_rejection_hides_later_challenges(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c1")

    manager.reject(RELAY_URL, remember_for_session=True)
    relay.challenge.push("c2")

    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.challenge_received
    assert manager.pending_challenges.value == ()


@pytest.mark.asyncio
async def test_unremembered_rejection_lets_new_challenge_surface(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c1")

    manager.reject(RELAY_URL, remember_for_session=False)
    relay.challenge.push("c2")

    pending = manager.pending_challenges.value
    assert [(p.relay_url, p.challenge) for p in pending] == [(RELAY_URL, "c2")]


# --- Preferences -----------------------------------------------------------


@pytest.mark.asyncio
async def test_scenario_b_always_preference_auto_authenticates(harness: Harness) -> None:
    signer = FakeSigner()
    harness.signer.push(signer)
    manager = harness.build()
    manager.set_preference(RELAY_URL, AuthPreference.always)
    relay = FakeRelay()
    manager.monitor_relay(relay)

    relay.challenge.push("xyz")

    relay.authenticate.assert_called_once_with(signer)
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticating
    await drain()
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticating


@pytest.mark.asyncio
async def test_always_preference_without_signer_waits_at_prompt(harness: Harness) -> None:
    manager = harness.build()
    manager.set_preference(RELAY_URL, AuthPreference.always)
    relay = FakeRelay()
    manager.monitor_relay(relay)

    relay.challenge.push("xyz")

    relay.authenticate.assert_not_called()
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.challenge_received


@pytest.mark.asyncio
async def test_signer_arrival_triggers_pending_auto_auth(harness: Harness) -> None:
    manager = harness.build()
    manager.set_preference(RELAY_URL, AuthPreference.always)
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("xyz")

    signer = FakeSigner()
    harness.signer.push(signer)

    relay.authenticate.assert_called_once_with(signer)
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.authenticating
    await drain()


@pytest.mark.asyncio
async def test_signer_arrival_leaves_ask_relays_at_prompt(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("xyz")

    harness.signer.push(FakeSigner())

    relay.authenticate.assert_not_called()
    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.challenge_received


@pytest.mark.asyncio
async def test_auto_auth_failure_is_recorded_not_raised(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    manager.set_preference(RELAY_URL, AuthPreference.always)
    relay = FakeRelay()
    relay.authenticate.side_effect = RuntimeError("signing failed")
    manager.monitor_relay(relay)

    relay.challenge.push("xyz")
    await drain()

    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.failed


def test_auto_auth_outside_event_loop_fails_instead_of_raising(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    harness.storage.set_item("relay-auth-preferences", json.dumps({RELAY_URL: "always"}))
    relay = FakeRelay()
    relay.challenge.push("xyz")

    manager = harness.build(initial_relays=[relay])

    relay.authenticate.assert_not_called()
    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.failed
    assert state.challenge is None
    manager.destroy()


@pytest.mark.asyncio
async def test_transitions_are_logged_with_event_name(
    harness: Harness, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)

    with structlog.testing.capture_logs() as logs:
        monkeypatch.setattr(
            relay_auth_manager, "log", structlog.get_logger(relay_auth_manager.__name__)
        )
        relay.challenge.push("c")
        manager.reject(RELAY_URL)

    transitions = [e for e in logs if e["event"] == "relay_auth_transition"]
    assert [(e["auth_event"], e["to_status"]) for e in transitions] == [
        ("ChallengeReceived", "challenge_received"),
        ("UserRejected", "rejected"),
    ]
    manager.destroy()


@pytest.mark.asyncio
async def test_scenario_c_never_preference_auto_rejects(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    manager.set_preference(RELAY_URL, AuthPreference.never)
    relay = FakeRelay()
    manager.monitor_relay(relay)

    relay.challenge.push("xyz")

    state = manager.get_relay_state(RELAY_URL)
    assert state.status == AuthStatus.rejected
    assert state.challenge is None
    relay.authenticate.assert_not_called()
    assert manager.pending_challenges.value == ()


@pytest.mark.asyncio
async def test_preferences_are_persisted_as_one_blob(harness: Harness) -> None:
    manager = harness.build()
    manager.set_preference("wss://relay.example.com", AuthPreference.always)
    manager.set_preference("wss://other.relay.com", AuthPreference.never)

    saved = json.loads(harness.storage.items["relay-auth-preferences"])
    assert saved == {"wss://relay.example.com": "always", "wss://other.relay.com": "never"}
    assert dict(manager.get_all_preferences()) == {
        "wss://relay.example.com": AuthPreference.always,
        "wss://other.relay.com": AuthPreference.never,
    }


@pytest.mark.asyncio
async def test_preferences_load_on_construction(harness: Harness) -> None:
    storage = MemoryStorage(
        {"relay-auth-preferences": json.dumps({"wss://relay.example.com": "always"})}
    )
    manager = harness.build(storage=storage)
    assert manager.get_preference(RELAY_URL) == AuthPreference.always
    assert manager.get_preference("wss://other.relay.com") is None


@pytest.mark.asyncio
async def test_custom_storage_key(harness: Harness) -> None:
    manager = harness.build(storage_key="my-auth-prefs")
    manager.set_preference(RELAY_URL, AuthPreference.always)
    assert json.loads(harness.storage.items["my-auth-prefs"]) == {RELAY_URL: "always"}


@pytest.mark.asyncio
async def test_corrupted_storage_does_not_break_construction(harness: Harness) -> None:
    manager = harness.build(storage=MemoryStorage({"relay-auth-preferences": "not valid json"}))
    assert manager.get_preference(RELAY_URL) is None


@pytest.mark.asyncio
async def test_works_without_storage(harness: Harness) -> None:
    manager = harness.build(storage=None)
    manager.set_preference(RELAY_URL, AuthPreference.always)
    assert manager.get_preference(RELAY_URL) == AuthPreference.always


# --- Pending challenges ----------------------------------------------------


@pytest.mark.asyncio
async def test_pending_requires_signer(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")
    assert manager.pending_challenges.value == ()

    harness.signer.push(FakeSigner())
    assert [p.relay_url for p in manager.pending_challenges.value] == [RELAY_URL]

    harness.signer.push(None)
    assert manager.pending_challenges.value == ()

    harness.signer.push(FakeSigner("second"))
    assert len(manager.pending_challenges.value) == 1


@pytest.mark.asyncio
async def test_pending_requires_connected_relay(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay(connected=False)
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    assert manager.get_relay_state(RELAY_URL).status == AuthStatus.challenge_received
    assert manager.pending_challenges.value == ()


@pytest.mark.asyncio
async def test_never_preference_set_later_hides_open_prompt(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")
    assert len(manager.pending_challenges.value) == 1

    manager.set_preference(RELAY_URL, AuthPreference.never)
    assert manager.pending_challenges.value == ()

    manager.set_preference(RELAY_URL, AuthPreference.ask)
    assert len(manager.pending_challenges.value) == 1


@pytest.mark.asyncio
async def test_pending_expires_after_ttl(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build(challenge_ttl=timedelta(seconds=60))
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    harness.clock.advance(timedelta(seconds=59))
    assert len(manager.get_pending_challenges()) == 1

    harness.clock.advance(timedelta(seconds=1))
    assert manager.get_pending_challenges() == ()
    # The next emission agrees with the lazy read.
    harness.signer.push(FakeSigner("again"))
    assert manager.pending_challenges.value == ()
    manager.destroy()


@pytest.mark.asyncio
async def test_expiry_timer_reemits_without_new_signal(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build(challenge_ttl=timedelta(milliseconds=20), clock=None)
    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")
    assert len(manager.pending_challenges.value) == 1

    await asyncio.sleep(0.1)

    assert manager.pending_challenges.value == ()
    manager.destroy()


# --- Feeds and shutdown ----------------------------------------------------


@pytest.mark.asyncio
async def test_states_feed_emits_fresh_snapshots(harness: Harness) -> None:
    manager = harness.build()
    snapshots = []
    manager.states.subscribe(snapshots.append)
    assert len(snapshots[0]) == 0

    relay = FakeRelay()
    manager.monitor_relay(relay)
    relay.challenge.push("c")

    assert snapshots[-1][RELAY_URL].status == AuthStatus.challenge_received
    assert snapshots[-1] is not snapshots[-2]
    assert isinstance(snapshots[-1], MappingProxyType)
    # Earlier snapshots are unaffected by later changes.
    assert snapshots[1][RELAY_URL].status == AuthStatus.none


@pytest.mark.asyncio
async def test_has_signer_available(harness: Harness) -> None:
    manager = harness.build()
    assert manager.has_signer_available() is False
    harness.signer.push(FakeSigner())
    assert manager.has_signer_available() is True
    harness.signer.push(None)
    assert manager.has_signer_available() is False


@pytest.mark.asyncio
async def test_destroy_clears_state_and_completes_feeds(harness: Harness) -> None:
    manager = harness.build()
    relay = FakeRelay()
    manager.monitor_relay(relay)
    completed: list[str] = []
    manager.states.subscribe(lambda _: None, lambda: completed.append("states"))
    manager.pending_challenges.subscribe(lambda _: None, lambda: completed.append("pending"))

    manager.destroy()

    assert manager.get_all_states() == {}
    assert completed == ["states", "pending"]

    # Late subscribers observe shutdown; relay signals are ignored.
    late: list[str] = []
    manager.states.subscribe(lambda _: None, lambda: late.append("done"))
    assert late == ["done"]
    relay.challenge.push("after-destroy")
    harness.signer.push(FakeSigner())


@pytest.mark.asyncio
async def test_destroy_cancels_in_flight_auto_auth(harness: Harness) -> None:
    harness.signer.push(FakeSigner())
    manager = harness.build()
    manager.set_preference(RELAY_URL, AuthPreference.always)
    relay = FakeRelay()
    never = asyncio.Event()

    async def hang(_signer) -> None:
        await never.wait()

    relay.authenticate.side_effect = hang
    manager.monitor_relay(relay)
    relay.challenge.push("xyz")
    await asyncio.sleep(0)

    manager.destroy()
    await drain()

    assert manager.get_all_states() == {}
