"""
relay_auth.services.preauth

Pre-authentication gate.

Responsibilities:
- Wait until relays settle their AUTH handshake before heavy work is sent to them.
- Bound how many relays are awaited concurrently and how long each may take.
- Summarize which relays ended up authenticated.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass

from relay_auth.coordinator.errors import NotMonitoredError
from relay_auth.coordinator.models import AuthStatus
from relay_auth.observability.logging import get_logger
from relay_auth.services.relay_auth_manager import RelayAuthManager, StatesSnapshot

log = get_logger(__name__)

_FAILED_STATUSES = frozenset({AuthStatus.failed, AuthStatus.rejected})


@dataclass(frozen=True, slots=True)
class RelayAuthResult:
    url: str
    authenticated: bool
    error: str | None = None
    # Seconds spent waiting.
    duration: float | None = None


async def await_relay_auth(
    manager: RelayAuthManager, url: str, *, timeout: float = 5.0
) -> RelayAuthResult:
    """
    Resolve once `url` is authenticated (success) or failed/rejected (failure).
    Relays that never settle within `timeout` are reported as failed, not raised.
    """

    started = time.perf_counter()
    loop = asyncio.get_running_loop()
    outcome: asyncio.Future[AuthStatus] = loop.create_future()

    def on_states(_: StatesSnapshot) -> None:
        if outcome.done():
            return
        state = manager.get_relay_state(url)
        if state is None:
            outcome.set_exception(NotMonitoredError(url))
        elif state.status == AuthStatus.authenticated or state.status in _FAILED_STATUSES:
            outcome.set_result(state.status)

    def on_complete() -> None:
        if not outcome.done():
            outcome.set_exception(RuntimeError("relay auth manager was destroyed"))

    sub = manager.states.subscribe(on_states, on_complete)
    try:
        status = await asyncio.wait_for(outcome, timeout)
    except TimeoutError:
        error = f"timed out after {timeout:g}s"
    except (NotMonitoredError, RuntimeError) as e:
        error = str(e)
    else:
        if status == AuthStatus.authenticated:
            duration = time.perf_counter() - started
            log.info("relay_preauth_ok", relay=url, duration=round(duration, 3))
            return RelayAuthResult(url=url, authenticated=True, duration=duration)
        error = f"authentication {status}"
    finally:
        sub.unsubscribe()

    duration = time.perf_counter() - started
    log.warning("relay_preauth_failed", relay=url, error=error, duration=round(duration, 3))
    return RelayAuthResult(url=url, authenticated=False, error=error, duration=duration)


async def await_relays_auth(
    manager: RelayAuthManager,
    urls: Iterable[str],
    *,
    timeout: float = 5.0,
    concurrency: int = 5,
) -> list[RelayAuthResult]:
    urls = list(urls)
    if not urls:
        return []

    gate = asyncio.Semaphore(concurrency)

    async def _one(url: str) -> RelayAuthResult:
        async with gate:
            return await await_relay_auth(manager, url, timeout=timeout)

    results = await asyncio.gather(*(_one(u) for u in urls))
    ok = sum(1 for r in results if r.authenticated)
    log.info("relay_preauth_complete", succeeded=ok, failed=len(results) - ok)
    return list(results)


def authenticated_relays(results: Iterable[RelayAuthResult]) -> list[str]:
    return [r.url for r in results if r.authenticated]


def failed_relays(results: Iterable[RelayAuthResult]) -> list[str]:
    return [r.url for r in results if not r.authenticated]


# --- Module Notes -----------------------------------------------------------
# The gate only observes manager state; whatever traffic makes a relay issue its challenge
# (a lightweight subscription, a publish) is sent by the transport layer.
