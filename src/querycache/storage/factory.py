"""Build the storage primitive named by a :class:`~querycache.models.StorageConfig`."""

from __future__ import annotations

from pathlib import Path

from querycache.models import StorageBackend, StorageConfig
from querycache.storage.base import KeyValueStorage
from querycache.storage.disk import DiskCacheStorage
from querycache.storage.file import FileStorage
from querycache.storage.memory import MemoryStorage


def create_storage(config: StorageConfig) -> KeyValueStorage:
    """Create a persistent-store primitive from *config*.

    When ``config.path`` is unset, on-disk backends live under
    :func:`~querycache.config.get_cache_dir`.
    """
    if config.backend == StorageBackend.MEMORY:
        return MemoryStorage()

    if config.path:
        root = Path(config.path).expanduser()
    else:
        from querycache.config import get_cache_dir

        root = get_cache_dir()

    if config.backend == StorageBackend.DISKCACHE:
        return DiskCacheStorage(root)
    return FileStorage(root / "collections")
