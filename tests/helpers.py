"""
tests.helpers

Shared test doubles for relays, signers, storage and clocks.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

from relay_auth.contracts import RelayPoolFeeds
from relay_auth.feeds import ValueFeed
from relay_auth.services.relay_auth_manager import RelayAuthManager
from relay_auth.storage import MemoryStorage

RELAY_URL = "wss://relay.example.com"


class FakeRelay:
    def __init__(self, url: str = RELAY_URL, *, connected: bool = True) -> None:
        self.url = url
        self.connectivity: ValueFeed[bool] = ValueFeed(connected)
        self.challenge: ValueFeed[str | None] = ValueFeed(None)
        self.authenticated: ValueFeed[bool] = ValueFeed(False)
        self.authenticate = AsyncMock(return_value={"ok": True})


class FakeSigner:
    def __init__(self, name: str = "signer") -> None:
        self.name = name


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@dataclass
class Harness:
    signer: ValueFeed[Any] = field(default_factory=lambda: ValueFeed(None))
    pool: RelayPoolFeeds = field(default_factory=RelayPoolFeeds)
    storage: MemoryStorage = field(default_factory=MemoryStorage)
    clock: FakeClock = field(default_factory=FakeClock)

    def build(self, **overrides: Any) -> RelayAuthManager:
        kwargs: dict[str, Any] = {
            "signer": self.signer,
            "pool": self.pool,
            "storage": self.storage,
            "clock": self.clock,
        }
        kwargs.update(overrides)
        return RelayAuthManager(**kwargs)


async def drain() -> None:
    # Let auto-auth tasks run to completion.
    for _ in range(5):
        await asyncio.sleep(0)
