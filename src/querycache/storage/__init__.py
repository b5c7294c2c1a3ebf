"""Persistent-store primitives for querycache.

Each primitive is a synchronous, string-keyed ``get_item`` / ``set_item`` /
``remove_item`` store in the spirit of a browser ``Storage`` object. The
cache never talks to a primitive directly; it goes through
:class:`~querycache.cache.store.CollectionStore`.

Available primitives:

* :class:`MemoryStorage` -- a per-process dict, lost on exit.
* :class:`FileStorage` -- one file per key in a directory, written atomically.
* :class:`DiskCacheStorage` -- a :mod:`diskcache` directory.

:func:`create_storage` builds the primitive named by a
:class:`~querycache.models.StorageConfig`.
"""

from querycache.storage.base import KeyValueStorage
from querycache.storage.disk import DiskCacheStorage
from querycache.storage.file import FileStorage
from querycache.storage.factory import create_storage
from querycache.storage.memory import MemoryStorage

__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "DiskCacheStorage",
    "create_storage",
]
