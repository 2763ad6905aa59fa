"""
Key/value persistence used by the block pointer and proof caches.

Stores are synchronous: a cache's read-modify-write never yields to the
event loop, so other coroutines cannot observe a half-written state.
"""

import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String key/value persistence (get/set/remove by key)."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, used when no cache directory is configured."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class FileStore:
    """
    Directory-backed store with one file per key.

    Keys contain URLs and colons, so they are percent-encoded into file names.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create cache directory {self.directory}: {e}") from e

    def _path_for(self, key: str) -> Path:
        return self.directory / quote(key, safe="")

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {key}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceError(f"Failed to write {key}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to remove {key}: {e}") from e
