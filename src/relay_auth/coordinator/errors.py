"""
relay_auth.coordinator.errors

Usage errors raised by `RelayAuthManager.authenticate`.

Responsibilities:
- Distinguish caller mistakes (unknown relay, nothing to sign, no signer) from
  relay-side authentication failures, which propagate as the relay raised them.
"""

from __future__ import annotations


class RelayAuthError(Exception):
    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class NotMonitoredError(RelayAuthError):
    def __init__(self, url: str) -> None:
        super().__init__(url, f"Relay {url} is not being monitored")


class NoChallengeError(RelayAuthError):
    def __init__(self, url: str) -> None:
        super().__init__(url, f"No auth challenge for {url}")


class NoSignerError(RelayAuthError):
    def __init__(self, url: str) -> None:
        super().__init__(url, "No signer available for authentication")


# --- Module Notes -----------------------------------------------------------
# The API layer maps these onto 404/409 responses; they are never retried automatically.
