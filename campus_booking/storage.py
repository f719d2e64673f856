"""String-keyed persistence primitives.

Everything the service keeps (accounts, the session, appointment records)
lives as JSON text under a handful of keys, the same way a browser keeps
them in local storage. Callers read a whole value, change it in memory and
write the whole value back.
"""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from .errors import StorageError
from .logging_config import get_logger

logger = get_logger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
USERS_KEY = "users"
APPOINTMENTS_KEY = "appointments"


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage, one per process or per test."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class FileStorage:
    """All keys in a single JSON object file.

    Every write replaces the whole file through a temp file and ``os.replace``.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"cannot read {self.path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("storage_file_corrupt", path=str(self.path))
            return {}
        if not isinstance(data, dict):
            logger.warning("storage_file_corrupt", path=str(self.path))
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, items: dict[str, str]) -> None:
        tmp = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp is not None and os.path.exists(tmp):
                os.remove(tmp)
            raise StorageError(f"cannot write {self.path}: {exc}") from exc

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


class NamespacedStorage:
    """View over another storage with every key prefixed."""

    def __init__(self, base: KeyValueStorage, prefix: str):
        self.base = base
        self.prefix = prefix

    def get_item(self, key: str) -> str | None:
        return self.base.get_item(self.prefix + key)

    def set_item(self, key: str, value: str) -> None:
        self.base.set_item(self.prefix + key, value)

    def remove_item(self, key: str) -> None:
        self.base.remove_item(self.prefix + key)


def read_json(storage: KeyValueStorage, key: str, default: Any = None) -> Any:
    """Decode the JSON value under ``key``; missing or malformed gives ``default``."""
    raw = storage.get_item(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("malformed_value", key=key)
        return default


def write_json(storage: KeyValueStorage, key: str, value: Any) -> None:
    storage.set_item(key, json.dumps(value))


def build_storage(path: str = "") -> KeyValueStorage:
    """File storage when a path is configured, memory otherwise."""
    if path:
        return FileStorage(path)
    return MemoryStorage()
