"""In-memory observable mirror of cache contents.

The mirror lets consumers read what is cached without touching the
persistent store. It maps stored keys to values and is never authoritative
for expiration; the engine decides freshness from the store.

Every change swaps in a new :class:`MirrorSnapshot` (version + read-only
mapping) rather than mutating the current one, so a reader holding a
snapshot always sees a consistent view. Subscribers are called with the new
snapshot after each swap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from querycache.cache.codec import logical_part

Subscriber = Callable[["MirrorSnapshot"], None]


@dataclass(frozen=True)
class MirrorSnapshot:
    """An immutable view of the mirror at one version."""

    version: int = 0
    entries: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, stored_key: str, default: Any = None) -> Any:
        return self.entries.get(stored_key, default)

    def get_logical(self, logical_key: str, default: Any = None) -> Any:
        """Return the value of the first entry derived from *logical_key*."""
        for stored_key, value in self.entries.items():
            if logical_part(stored_key) == logical_key:
                return value
        return default

    def __contains__(self, stored_key: object) -> bool:
        return stored_key in self.entries

    def __len__(self) -> int:
        return len(self.entries)


class CacheMirror:
    """Holder of the current :class:`MirrorSnapshot`.

    Only the cache engine's write paths call :meth:`put`, :meth:`discard`
    and :meth:`replace`; everyone else reads :meth:`snapshot` or subscribes.
    """

    def __init__(self) -> None:
        self._snapshot = MirrorSnapshot()
        self._subscribers: list[Subscriber] = []

    def snapshot(self) -> MirrorSnapshot:
        """Return the current snapshot."""
        return self._snapshot

    def replace(self, entries: Mapping[str, Any]) -> MirrorSnapshot:
        """Install a copy of *entries* as the next version and notify subscribers."""
        self._snapshot = MirrorSnapshot(
            version=self._snapshot.version + 1,
            entries=MappingProxyType(dict(entries)),
        )
        for callback in list(self._subscribers):
            callback(self._snapshot)
        return self._snapshot

    def put(self, stored_key: str, value: Any) -> MirrorSnapshot:
        updated = dict(self._snapshot.entries)
        updated[stored_key] = value
        return self.replace(updated)

    def discard(self, stored_key: str) -> Optional[MirrorSnapshot]:
        """Drop *stored_key*; returns ``None`` without a new version if it was absent."""
        if stored_key not in self._snapshot.entries:
            return None
        updated = dict(self._snapshot.entries)
        del updated[stored_key]
        return self.replace(updated)

    def discard_logical(self, logical_key: str) -> Optional[MirrorSnapshot]:
        """Drop every entry derived from *logical_key*."""
        updated = {
            k: v for k, v in self._snapshot.entries.items() if logical_part(k) != logical_key
        }
        if len(updated) == len(self._snapshot.entries):
            return None
        return self.replace(updated)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call *callback* on every new snapshot. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe
