"""
relay_auth.services.preferences

Per-relay auth policy (ask / always / never) with optional persistence.

Responsibilities:
- Load the persisted preference blob once, tolerating corrupt or foreign data.
- Persist the whole map after every change as one JSON object under a single key.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import TypeAdapter, ValidationError

from relay_auth.contracts import KeyValueStorage, normalize_relay_url
from relay_auth.coordinator.models import AuthPreference
from relay_auth.observability.logging import get_logger

log = get_logger(__name__)

_RAW_ADAPTER = TypeAdapter(dict[str, Any])
_PREFS_ADAPTER = TypeAdapter(dict[str, AuthPreference])


class PreferenceStore:
    def __init__(self, *, storage: KeyValueStorage | None, storage_key: str) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self._preferences: dict[str, AuthPreference] = {}
        self._load()

    def get(self, url: str) -> AuthPreference | None:
        return self._preferences.get(url)

    def set(self, url: str, preference: AuthPreference) -> None:
        self._preferences[url] = AuthPreference(preference)
        self._save()

    def all(self) -> Mapping[str, AuthPreference]:
        return MappingProxyType(dict(self._preferences))

    def _load(self) -> None:
        if self._storage is None:
            return

        try:
            raw = self._storage.get_item(self._storage_key)
            if not raw:
                return
            stored = _RAW_ADAPTER.validate_json(raw)
        except (ValidationError, ValueError, OSError) as e:
            # A corrupted store degrades to "no saved preferences" instead of failing startup.
            log.warning("auth_preferences_unreadable", key=self._storage_key, error=str(e))
            return

        for url, value in stored.items():
            try:
                self._preferences[normalize_relay_url(url)] = AuthPreference(value)
            except ValueError:
                log.debug("auth_preference_ignored", relay=url, value=repr(value))

    def _save(self) -> None:
        if self._storage is None:
            return
        self._storage.set_item(
            self._storage_key, _PREFS_ADAPTER.dump_json(self._preferences).decode()
        )


# --- Module Notes -----------------------------------------------------------
# Write errors from the storage backend propagate to the caller of `set`; the in-memory
# value is already updated at that point, so the running process keeps the new policy.
