"""Expiration-aware cache core for querycache.

This package provides the pieces the query clients are built on:

* :mod:`~querycache.cache.codec` -- logical and stored keys, and the
  pair-list collection format;
* :class:`CollectionStore` -- named collections over a persistent-store
  primitive;
* :class:`CacheMirror` -- the observable in-memory mirror;
* :class:`CacheEngine` -- lookup with lazy expiry, insert, invalidate.
"""

from querycache.cache.engine import MISS, CacheEngine, system_clock
from querycache.cache.mirror import CacheMirror, MirrorSnapshot
from querycache.cache.store import CollectionStore

__all__ = [
    "MISS",
    "CacheEngine",
    "CacheMirror",
    "CollectionStore",
    "MirrorSnapshot",
    "system_clock",
]
