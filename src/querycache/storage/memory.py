"""In-process persistent-store primitive.

Suitable for tests and short-lived processes. Contents are lost when the
process exits.
"""

from __future__ import annotations

from typing import Optional

from querycache.storage.base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Dict-backed :class:`~querycache.storage.base.KeyValueStorage`.

    Args:
        initial: Optional starting contents, copied on construction.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items
