"""Key-value backends that hold the persisted sections of a workspace.

Every backend stores short text values (the JSON of one section) under a
small fixed set of keys. Three implementations are provided:

* :class:`MemoryStore` -- a plain dict; used by tests and ``--store memory``.
* :class:`FileStore` -- one ``<key>.json`` file per key in a directory.
  Writes go through :func:`apibldr.config.atomic_write`, so a crash never
  leaves a half-written section behind.
* :class:`DiskCacheStore` -- a :class:`diskcache.Cache` directory.

Backends raise :class:`~apibldr.exceptions.PersistenceError` (or let
:class:`OSError` propagate) on failure. Swallowing failures is the job of
:class:`~apibldr.store.persistence.PersistenceLayer`, not of the backend.
"""

from __future__ import annotations

import abc
import logging
import re
from pathlib import Path
from typing import Optional

import diskcache

from apibldr.config import atomic_write
from apibldr.exceptions import PersistenceError

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_key(key: str) -> str:
    if not _KEY_RE.match(key) or key.startswith("."):
        raise PersistenceError(f"Invalid store key: {key!r}")
    return key


class SectionStore(abc.ABC):
    """Abstract key-value store for workspace sections.

    Values are text. ``get`` returns ``None`` for a missing key; ``delete`` on
    a missing key is a no-op.
    """

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None``."""

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, overwriting any previous value."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key* if present."""

    @abc.abstractmethod
    def keys(self) -> list[str]:
        """Return the stored keys, sorted."""

    def close(self) -> None:
        """Release any resources held by the backend."""

    def __enter__(self) -> SectionStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MemoryStore(SectionStore):
    """In-process store backed by a dict."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[_check_key(key)] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class FileStore(SectionStore):
    """One JSON file per key inside *directory*.

    Args:
        directory: Workspace directory; created on first write.

    Example::

        store = FileStore(Path("~/.local/share/apibldr/workspaces/default"))
        store.set("info", '{"title": "Pets", "version": "1.0.0"}')
        store.get("info")
    """

    suffix = ".json"

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{_check_key(key)}{self.suffix}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise PersistenceError(f"{path} is not valid UTF-8: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        atomic_write(path, value)
        logger.debug("Wrote %s", path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.is_file():
            path.unlink()

    def keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(
            p.name[: -len(self.suffix)]
            for p in self._directory.glob(f"*{self.suffix}")
            if p.is_file() and not p.name.startswith(".")
        )


class DiskCacheStore(SectionStore):
    """Store backed by a :class:`diskcache.Cache` directory.

    Entries never expire; the cache is used purely as a durable key-value
    store.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory).expanduser()
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self._directory))

    def _require_cache(self) -> diskcache.Cache:
        if self._cache is None:
            raise PersistenceError(f"Store at {self._directory} is closed")
        return self._cache

    def get(self, key: str) -> Optional[str]:
        value = self._require_cache().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._require_cache().set(_check_key(key), value)

    def delete(self, key: str) -> None:
        self._require_cache().delete(key)

    def keys(self) -> list[str]:
        return sorted(str(key) for key in self._require_cache().iterkeys())

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None


BACKENDS: dict[str, type[SectionStore]] = {
    "memory": MemoryStore,
    "file": FileStore,
    "diskcache": DiskCacheStore,
}
