"""Directory-backed persistent-store primitive.

Each key maps to one ``<percent-encoded key>.json`` file inside the storage
directory. Files are written atomically via
:func:`~querycache.config.atomic_write` so a crash mid-write never leaves a
truncated collection behind.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import quote, unquote

from querycache.config import atomic_write
from querycache.storage.base import KeyValueStorage

_SUFFIX = ".json"


class FileStorage(KeyValueStorage):
    """Persist each key as a file under *directory*.

    Args:
        directory: Storage root. Created on first write if missing.

    Example::

        storage = FileStorage("/tmp/querycache")
        storage.set_item("client_query_cache", "[]")
        assert storage.get_item("client_query_cache") == "[]"
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        """The storage root directory."""
        return self._directory

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        atomic_write(self._path(key), value)

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.is_file():
            path.unlink()

    def keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(
            unquote(p.name[: -len(_SUFFIX)])
            for p in self._directory.glob(f"*{_SUFFIX}")
            if p.is_file() and not p.name.startswith(".")
        )

    def _path(self, key: str) -> Path:
        """Filesystem path for *key*; every character outside ``[A-Za-z0-9_.-~]`` is escaped."""
        name = quote(key, safe="")
        if name.startswith("."):
            # leading dots are reserved for atomic_write temp files
            name = "%2E" + name[1:]
        return self._directory / f"{name}{_SUFFIX}"
