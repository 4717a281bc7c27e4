"""
relay_auth.storage

Key-value storage adapters for persisted auth preferences.

Responsibilities:
- `MemoryStorage`: process-lifetime dict (tests, embedded use).
- `JsonFileStorage`: small JSON object on disk, rewritten atomically on each write.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import TypeAdapter

_FILE_ADAPTER = TypeAdapter(dict[str, str])


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class JsonFileStorage:
    """
    Stores every key in one JSON object file. Reads raise `ValueError` for a corrupt file
    and `OSError` for I/O problems; callers decide how to degrade.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        return _FILE_ADAPTER.validate_json(self._path.read_bytes())

    def _write(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves a half-written file behind.
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(_FILE_ADAPTER.dump_json(items, indent=2))
            os.replace(tmp_name, self._path)
        except BaseException:
            os.unlink(tmp_name)
            raise


# --- Module Notes -----------------------------------------------------------
# Both adapters satisfy `relay_auth.contracts.KeyValueStorage`.
