"""Cache engine: lookup with lazy expiry, insert with TTL, and invalidation.

Each (logical key, collection) pair is in one of three states:

* **absent** -- no stored key in the collection derives from the logical key;
* **fresh** -- an entry exists and its expiration has not passed;
* **expired** -- an entry exists but its expiration has passed.

There are no timers. Expiry is detected when :meth:`CacheEngine.lookup`
reads an entry, and the entry is evicted on the spot. Eviction removes the
entry from the persistent collection (dropping the collection when it
becomes empty) and from the in-memory mirror.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable, Optional

from querycache.cache.codec import (
    encode_key,
    is_expired,
    logical_part,
    parse_expiration,
    stored_key_for,
)
from querycache.cache.mirror import CacheMirror
from querycache.cache.store import CollectionStore
from querycache.exceptions import QueryCacheError
from querycache.models import EntryInfo, EntryState
from querycache.output import get_output

Clock = Callable[[], int]


class _Miss:
    """Sentinel type returned by :meth:`CacheEngine.lookup` on a miss."""

    _instance: Optional[_Miss] = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()
"""Returned by :meth:`CacheEngine.lookup` when there is no fresh entry.

Cached values may legitimately be ``None``, so compare with ``is MISS``.
"""


def system_clock() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


class CacheEngine:
    """Expiration-aware cache over named persistent collections.

    Args:
        store: Adapter for the persistent collections.
        mirror: The observable in-memory mirror. A private one is created
            when omitted.
        clock: Returns the current time in epoch milliseconds.

    Example::

        engine = CacheEngine(CollectionStore(MemoryStorage()))
        engine.insert("endpoint=/a&method=GET", {"x": 1}, "default", ttl_seconds=5)
        engine.lookup("endpoint=/a&method=GET", "default")   # {"x": 1}
    """

    def __init__(
        self,
        store: CollectionStore,
        mirror: Optional[CacheMirror] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._mirror = mirror if mirror is not None else CacheMirror()
        self._clock = clock or system_clock

    @property
    def store(self) -> CollectionStore:
        return self._store

    @property
    def mirror(self) -> CacheMirror:
        return self._mirror

    def now_ms(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------ #
    # Core operations
    # ------------------------------------------------------------------ #

    def lookup(self, logical_key: str, collection_key: str) -> Any:
        """Return the fresh value cached for *logical_key*, or :data:`MISS`.

        Only the first entry whose logical part equals *logical_key* is
        considered. If it has a valid expiration in the past it is evicted
        and the lookup misses. An entry with a missing or malformed
        expiration never expires.

        Raises:
            StoreReadFailure: If the collection cannot be read.
            StoreWriteFailure: If evicting an expired entry fails.
        """
        entries = self._store.load(collection_key)
        match = _first_match(entries, logical_key)
        output = get_output()

        if match is None:
            output.debug(f"Cache miss: {logical_key} [{collection_key}]")
            return MISS

        stored_key, value = match
        if is_expired(stored_key, self.now_ms()):
            output.debug(f"Cache expired: {stored_key} [{collection_key}]")
            self.evict(collection_key, stored_key)
            return MISS

        output.debug(f"Cache hit: {logical_key} [{collection_key}]")
        self._mirror.put(stored_key, value)
        return value

    def insert(
        self,
        logical_key: str,
        value: Any,
        collection_key: str,
        ttl_seconds: float,
        evict_duplicates: bool = False,
    ) -> str:
        """Store *value* under a fresh stored key expiring in *ttl_seconds*.

        Older entries for the same logical key are left in place unless
        *evict_duplicates* is set, in which case they are dropped first and
        the new entry is appended.

        Returns:
            The stored key that was written.

        Raises:
            StoreReadFailure: If the existing collection cannot be read.
            StoreWriteFailure: If *value* is not serialisable or the write fails.
        """
        entries = self._store.load(collection_key)
        stale: list[str] = []
        if evict_duplicates:
            stale = [k for k in entries if logical_part(k) == logical_key]
            for key in stale:
                del entries[key]

        stored_key = encode_key(logical_key, ttl_seconds, self.now_ms())
        entries[stored_key] = value
        self._store.save(collection_key, entries)

        updated = dict(self._mirror.snapshot().entries)
        for key in stale:
            updated.pop(key, None)
        updated[stored_key] = value
        self._mirror.replace(updated)

        get_output().debug(f"Cache insert: {stored_key} [{collection_key}]")
        return stored_key

    def invalidate(self, logical_key: str, collection_key: str) -> bool:
        """Evict the entry cached for *logical_key*, if any.

        The stored key is rebuilt from the first matching entry's parsed
        expiration; entries whose expiration cannot be parsed are therefore
        left alone. Invalidating an absent key succeeds without writing.

        Returns:
            ``True`` on success (including no-op), ``False`` if reading or
            writing the collection failed. Never raises
            :class:`~querycache.exceptions.QueryCacheError`.
        """
        try:
            entries = self._store.load(collection_key)
            match = _first_match(entries, logical_key)
            if match is None:
                return True
            removal_key = stored_key_for(logical_key, parse_expiration(match[0]))
            if removal_key is not None:
                self.evict(collection_key, removal_key)
            return True
        except QueryCacheError as exc:
            get_output().error(f"Invalidation of {logical_key} failed: {exc}")
            return False

    def evict(self, collection_key: str, stored_key: str) -> bool:
        """Remove *stored_key* from the collection and from the mirror.

        Returns:
            ``True`` if the entry was present in the collection.
        """
        removed = self._store.discard(collection_key, stored_key)
        self._mirror.discard(stored_key)
        if removed:
            get_output().debug(f"Cache evict: {stored_key} [{collection_key}]")
        return removed

    # ------------------------------------------------------------------ #
    # Maintenance and inspection
    # ------------------------------------------------------------------ #

    def clear(self, collection_key: str) -> int:
        """Remove a whole collection. Returns the number of entries dropped."""
        entries = self._store.load(collection_key)
        self._store.remove(collection_key)
        snapshot = self._mirror.snapshot()
        remaining = {k: v for k, v in snapshot.entries.items() if k not in entries}
        if len(remaining) != len(snapshot.entries):
            self._mirror.replace(remaining)
        return len(entries)

    def prune(self, collection_key: str) -> int:
        """Evict every expired entry of a collection in one write.

        Returns:
            The number of entries evicted.
        """
        entries = self._store.load(collection_key)
        now = self.now_ms()
        expired = [k for k in entries if is_expired(k, now)]
        if not expired:
            return 0
        for key in expired:
            del entries[key]
        self._store.save(collection_key, entries)

        snapshot = self._mirror.snapshot()
        remaining = {k: v for k, v in snapshot.entries.items() if k not in expired}
        if len(remaining) != len(snapshot.entries):
            self._mirror.replace(remaining)
        return len(expired)

    def entries(self, collection_key: str) -> list[EntryInfo]:
        """Describe every entry of a collection without evicting anything."""
        now = self.now_ms()
        infos = []
        for stored_key, value in self._store.load(collection_key).items():
            expiration = parse_expiration(stored_key)
            if math.isnan(expiration):
                state = EntryState.NEVER
                exp_value = None
            else:
                state = EntryState.EXPIRED if now > expiration else EntryState.FRESH
                exp_value = int(expiration) if math.isfinite(expiration) else None
            infos.append(
                EntryInfo(
                    stored_key=stored_key,
                    logical_key=logical_part(stored_key),
                    expiration=exp_value,
                    state=state,
                    value=value,
                )
            )
        return infos


def _first_match(entries: dict[str, Any], logical_key: str) -> Optional[tuple[str, Any]]:
    """First ``(stored_key, value)`` pair derived from *logical_key*, in stored order."""
    for stored_key, value in entries.items():
        if logical_part(stored_key) == logical_key:
            return stored_key, value
    return None
