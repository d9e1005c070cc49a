"""
Persistent storage for entity collections.

Each collection lives under its own key and is always written as a whole:

    <data_dir>/staffMembers.json
    <data_dir>/courses.json
    <data_dir>/tasks.json

Each file holds a JSON array of flat record objects. There are no partial
writes and no locking: two processes sharing a data directory simply
overwrite each other on the next save.

Modules never reach for a global store. They receive an object with
``load``/``save`` (the ``Store`` protocol) at construction, which keeps
tests on the in-memory ``MemoryStore``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from workload.errors import StorageReadError

logger = logging.getLogger(__name__)


class Store(Protocol):
    def load(self, key: str) -> Optional[list[dict[str, Any]]]:
        ...

    def save(self, key: str, records: Sequence[dict[str, Any]]) -> None:
        ...


def _check_key(key: str) -> str:
    k = (key or "").strip()
    if not k or "/" in k or "\\" in k or k.startswith("."):
        raise ValueError(f"Invalid storage key: {key!r}")
    return k


def _encode(records: Sequence[dict[str, Any]]) -> str:
    return json.dumps(list(records), indent=2, ensure_ascii=False)


def _decode(key: str, text: str) -> list[dict[str, Any]]:
    """
    Parse a stored value. Anything other than a JSON array of objects is
    malformed and raises StorageReadError.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise StorageReadError(f"{key}: invalid JSON ({exc})") from exc
    if not isinstance(data, list):
        raise StorageReadError(f"{key}: expected a JSON array, got {type(data).__name__}")
    for item in data:
        if not isinstance(item, dict):
            raise StorageReadError(f"{key}: expected objects in array, got {type(item).__name__}")
    return data


class JsonStore:
    """File-backed store: one JSON file per key inside ``data_dir``."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{_check_key(key)}.json"

    def read(self, key: str) -> Optional[list[dict[str, Any]]]:
        """
        Strict read: None if the key was never written,
        StorageReadError if the file exists but cannot be decoded.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageReadError(f"{key}: cannot read {path} ({exc})") from exc
        return _decode(key, text)

    def load(self, key: str) -> Optional[list[dict[str, Any]]]:
        """
        Load the collection under ``key``.

        Returns None if the file does not exist or is invalid, so the caller
        can reseed. It never raises for bad content.
        """
        try:
            return self.read(key)
        except StorageReadError as exc:
            logger.warning("Ignoring unreadable collection: %s", exc)
            return None

    def save(self, key: str, records: Sequence[dict[str, Any]]) -> None:
        """
        Replace the collection under ``key``.

        Creates the data directory if needed.
        """
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_encode(records), encoding="utf-8")
        logger.debug("Saved %d records to %s", len(records), path)


class MemoryStore:
    """
    In-memory store holding serialized strings, like a browser's local
    storage. Used by tests and for throwaway sessions.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.save_count = 0

    def get_raw(self, key: str) -> Optional[str]:
        return self._values.get(_check_key(key))

    def set_raw(self, key: str, text: str) -> None:
        self._values[_check_key(key)] = text

    def load(self, key: str) -> Optional[list[dict[str, Any]]]:
        text = self.get_raw(key)
        if text is None:
            return None
        try:
            return _decode(key, text)
        except StorageReadError as exc:
            logger.warning("Ignoring unreadable collection: %s", exc)
            return None

    def save(self, key: str, records: Sequence[dict[str, Any]]) -> None:
        self._values[_check_key(key)] = _encode(records)
        self.save_count += 1
