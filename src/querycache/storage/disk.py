"""Persistent-store primitive backed by :mod:`diskcache`.

:class:`diskcache.Cache` gives a process-safe SQLite-indexed directory. Only
plain string values are stored, and without a diskcache-level ``expire``:
expiration is owned by the cache engine and lives inside the stored keys.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

import diskcache

from querycache.storage.base import KeyValueStorage


class DiskCacheStorage(KeyValueStorage):
    """:class:`~querycache.storage.base.KeyValueStorage` over a :class:`diskcache.Cache`.

    SQLite and lock-timeout errors are re-raised as :class:`OSError` so the
    collection store can classify them like any other backend failure.

    Args:
        directory: Directory for the diskcache database. A ``collections/``
            subdirectory is created inside it.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory) / "collections"
        self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        """The diskcache directory."""
        return self._directory

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self._require().get(key)
        except (sqlite3.Error, diskcache.Timeout) as exc:
            raise OSError(str(exc)) from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            self._require().set(key, value)
        except (sqlite3.Error, diskcache.Timeout) as exc:
            raise OSError(str(exc)) from exc

    def remove_item(self, key: str) -> None:
        try:
            self._require().delete(key)
        except (sqlite3.Error, diskcache.Timeout) as exc:
            raise OSError(str(exc)) from exc

    def keys(self) -> list[str]:
        try:
            return sorted(str(k) for k in self._require().iterkeys())
        except (sqlite3.Error, diskcache.Timeout) as exc:
            raise OSError(str(exc)) from exc

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`. Safe to call twice."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def _require(self) -> diskcache.Cache:
        if self._cache is None:
            raise OSError(f"Storage at {self._directory} is closed")
        return self._cache
