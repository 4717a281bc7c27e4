"""
relay_auth.contracts

Boundary contracts for the collaborators the coordinator consumes.

Responsibilities:
- Describe the relay, relay pool and key-value storage shapes (structural typing).
- Normalize relay URLs so the state table has one key per relay.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from relay_auth.feeds import Feed, ValueFeed

# Signing internals are opaque here; the coordinator only checks for presence.
Signer = Any


class AuthRelay(Protocol):
    """
    A relay connection as seen by the coordinator. Transport lives elsewhere.
    """

    url: str
    connectivity: ValueFeed[bool]
    challenge: ValueFeed[str | None]
    authenticated: ValueFeed[bool]

    def authenticate(self, signer: Signer) -> Awaitable[Any]: ...


class RelayPool(Protocol):
    added: Feed[AuthRelay]
    removed: Feed[AuthRelay]


@dataclass(slots=True)
class RelayPoolFeeds:
    """
    Minimal `RelayPool`: the transport layer pushes relays as it opens and closes them.
    """

    added: Feed[AuthRelay] = field(default_factory=Feed)
    removed: Feed[AuthRelay] = field(default_factory=Feed)


@runtime_checkable
class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


def normalize_relay_url(url: str) -> str:
    # Missing scheme defaults to secure websockets; trailing slashes are not significant.
    u = url.strip()
    if not u.startswith(("ws://", "wss://")):
        u = f"wss://{u}"
    return u.rstrip("/")


# --- Module Notes -----------------------------------------------------------
# Protocols are structural: test doubles and real transports satisfy them without inheritance.
