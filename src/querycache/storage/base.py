"""Abstract base class for persistent-store primitives.

Subclasses implement :meth:`~KeyValueStorage.get_item`,
:meth:`~KeyValueStorage.set_item` and :meth:`~KeyValueStorage.remove_item`.
:meth:`~KeyValueStorage.keys` and :meth:`~KeyValueStorage.close` have
default implementations so a minimal primitive only needs the three
accessors.

Writes must be visible to the next :meth:`get_item` call in the same
process. Backend failures are raised as-is (typically :class:`OSError`, or
:class:`UnicodeDecodeError` for stored bytes that are not valid text);
:class:`~querycache.cache.store.CollectionStore` translates them into
:class:`~querycache.exceptions.StoreReadFailure` and
:class:`~querycache.exceptions.StoreWriteFailure`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorage(ABC):
    """A synchronous string-keyed store of string values."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None`` if absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete *key*. A no-op when the key is absent."""
        ...

    def keys(self) -> list[str]:
        """Return every key currently stored.

        Primitives that cannot enumerate their contents return an empty list.
        """
        return []

    def close(self) -> None:
        """Release any resources held by the primitive."""

    def __enter__(self) -> KeyValueStorage:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
