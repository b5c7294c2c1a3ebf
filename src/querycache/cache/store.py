"""Persistent store adapter: named collections over a key-value primitive.

:class:`CollectionStore` is the only component that touches a
:class:`~querycache.storage.base.KeyValueStorage`. Every collection lives
under a single key as the pair-list JSON produced by
:func:`~querycache.cache.codec.encode_collection`.

Writes are never incremental: :meth:`CollectionStore.save` re-serialises
the whole collection, so each write costs O(collection size). Collections
are expected to stay small (one entry per distinct endpoint and method).
"""

from __future__ import annotations

from typing import Any

from querycache.cache.codec import decode_collection, encode_collection
from querycache.exceptions import StoreReadFailure, StoreWriteFailure
from querycache.storage.base import KeyValueStorage


class CollectionStore:
    """Load, save and remove named collections of cache entries.

    Args:
        storage: The persistent-store primitive.

    Example::

        store = CollectionStore(MemoryStorage())
        store.save("default", {"endpoint=/a&method=GET&expiration=1": {"x": 1}})
        store.load("default")
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    @property
    def storage(self) -> KeyValueStorage:
        """The underlying primitive."""
        return self._storage

    def load(self, collection_key: str) -> dict[str, Any]:
        """Return the collection's entries in stored order.

        Returns:
            An ordered ``{stored_key: value}`` mapping; empty when the
            collection does not exist.

        Raises:
            StoreReadFailure: If the stored text is not a valid pair list or
                the primitive fails to read.
        """
        try:
            text = self._storage.get_item(collection_key)
        except (OSError, UnicodeError) as exc:
            raise StoreReadFailure(f"Cannot read collection '{collection_key}': {exc}") from exc
        if text is None:
            return {}
        try:
            return decode_collection(text)
        except StoreReadFailure as exc:
            raise StoreReadFailure(f"Collection '{collection_key}' is corrupt: {exc}") from exc

    def save(self, collection_key: str, entries: dict[str, Any]) -> None:
        """Overwrite the collection with *entries*.

        An empty mapping removes the collection instead of persisting ``[]``.

        Raises:
            StoreWriteFailure: If a value cannot be serialised or the
                primitive rejects the write.
        """
        if not entries:
            self.remove(collection_key)
            return
        text = encode_collection(entries)
        try:
            self._storage.set_item(collection_key, text)
        except OSError as exc:
            raise StoreWriteFailure(f"Cannot write collection '{collection_key}': {exc}") from exc

    def remove(self, collection_key: str) -> None:
        """Delete the whole collection.

        Raises:
            StoreWriteFailure: If the primitive fails to delete.
        """
        try:
            self._storage.remove_item(collection_key)
        except OSError as exc:
            raise StoreWriteFailure(f"Cannot remove collection '{collection_key}': {exc}") from exc

    def discard(self, collection_key: str, stored_key: str) -> bool:
        """Remove one entry, dropping the collection once it is empty.

        Returns:
            ``True`` if the entry existed and was removed, ``False`` if it
            was absent (in which case nothing is written).
        """
        entries = self.load(collection_key)
        if stored_key not in entries:
            return False
        del entries[stored_key]
        self.save(collection_key, entries)
        return True

    def exists(self, collection_key: str) -> bool:
        """Whether the primitive currently holds *collection_key*."""
        try:
            return self._storage.get_item(collection_key) is not None
        except (OSError, UnicodeError) as exc:
            raise StoreReadFailure(f"Cannot read collection '{collection_key}': {exc}") from exc

    def collections(self) -> list[str]:
        """Keys known to the primitive (empty if it cannot enumerate)."""
        try:
            return self._storage.keys()
        except OSError as exc:
            raise StoreReadFailure(f"Cannot list collections: {exc}") from exc
