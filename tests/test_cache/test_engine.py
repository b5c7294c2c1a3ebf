"""Tests for CacheEngine lookup, insert, invalidate and maintenance."""

from __future__ import annotations

import json

import pytest

from querycache.cache import MISS, CacheEngine, CacheMirror, CollectionStore
from querycache.cache.codec import encode_key, logical_key
from querycache.models import EntryState
from querycache.output import OutputFormat, OutputManager, set_output
from querycache.storage import MemoryStorage

from conftest import START_MS, FakeClock


KEY = logical_key("/users")
COLLECTION = "test_cache"


def _stored_pairs(storage: MemoryStorage, collection: str = COLLECTION) -> list:
    raw = storage.get_item(collection)
    return [] if raw is None else json.loads(raw)


class TestMissSentinel:
    def test_is_falsy_singleton(self) -> None:
        assert not MISS
        assert repr(MISS) == "MISS"
        assert type(MISS)() is MISS


class TestLookup:
    def test_absent_collection_misses(self, engine: CacheEngine) -> None:
        assert engine.lookup(KEY, COLLECTION) is MISS

    def test_fresh_entry_hits(self, engine: CacheEngine, clock: FakeClock) -> None:
        engine.insert(KEY, {"users": [1]}, COLLECTION, ttl_seconds=5)
        clock.advance(4)
        assert engine.lookup(KEY, COLLECTION) == {"users": [1]}

    def test_none_value_is_a_hit(self, engine: CacheEngine) -> None:
        engine.insert(KEY, None, COLLECTION, ttl_seconds=5)
        assert engine.lookup(KEY, COLLECTION) is None

    def test_expiration_instant_is_still_fresh(self, engine: CacheEngine, clock: FakeClock) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        clock.advance(5)
        assert engine.lookup(KEY, COLLECTION) == 1

    def test_expired_entry_is_evicted(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, {"users": [1]}, COLLECTION, ttl_seconds=5)
        clock.advance(6)
        assert engine.lookup(KEY, COLLECTION) is MISS
        assert COLLECTION not in storage
        assert len(engine.mirror.snapshot()) == 0

    def test_expired_eviction_keeps_other_entries(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        other = logical_key("/other")
        engine.insert(other, 2, COLLECTION, ttl_seconds=60)
        clock.advance(6)
        assert engine.lookup(KEY, COLLECTION) is MISS
        pairs = _stored_pairs(storage)
        assert len(pairs) == 1
        assert pairs[0][1] == 2

    def test_malformed_expiration_never_expires(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        storage.set_item(COLLECTION, json.dumps([[f"{KEY}&expiration=soon", "v"]]))
        clock.advance(10**9)
        assert engine.lookup(KEY, COLLECTION) == "v"

    def test_only_first_matching_entry_counts(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        storage.set_item(
            COLLECTION,
            json.dumps(
                [
                    [f"{KEY}&expiration={START_MS + 1000}", "first"],
                    [f"{KEY}&expiration={START_MS + 9000}", "second"],
                ]
            ),
        )
        assert engine.lookup(KEY, COLLECTION) == "first"

    def test_logical_key_is_matched_exactly(self, engine: CacheEngine) -> None:
        engine.insert(logical_key("/users/1"), "one", COLLECTION, ttl_seconds=5)
        assert engine.lookup(logical_key("/users"), COLLECTION) is MISS

    def test_url_containing_separator_hits(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        key = logical_key("/s?a=1&expiration=10")
        engine.insert(key, {"n": 1}, COLLECTION, ttl_seconds=5)
        assert engine.lookup(key, COLLECTION) == {"n": 1}
        assert len(_stored_pairs(storage)) == 1

    def test_collections_are_isolated(self, engine: CacheEngine) -> None:
        engine.insert(KEY, "a", "one", ttl_seconds=5)
        assert engine.lookup(KEY, "two") is MISS

    def test_hit_is_reflected_in_mirror(
        self, storage: MemoryStorage, clock: FakeClock
    ) -> None:
        stored = encode_key(KEY, 5, START_MS)
        storage.set_item(COLLECTION, json.dumps([[stored, "v"]]))
        engine = CacheEngine(CollectionStore(storage), CacheMirror(), clock)
        engine.lookup(KEY, COLLECTION)
        assert engine.mirror.snapshot().get(stored) == "v"

    def test_debug_logs_hits_and_misses(
        self, engine: CacheEngine, capsys: pytest.CaptureFixture[str]
    ) -> None:
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        engine.lookup(KEY, COLLECTION)
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        engine.lookup(KEY, COLLECTION)
        err = capsys.readouterr().err
        assert "Cache miss" in err
        assert "Cache hit" in err


class TestInsert:
    def test_returns_encoded_stored_key(self, engine: CacheEngine) -> None:
        stored = engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        assert stored == f"{KEY}&expiration={START_MS + 5000}"

    def test_persists_pair_list(self, engine: CacheEngine, storage: MemoryStorage) -> None:
        stored = engine.insert(KEY, {"a": 1}, COLLECTION, ttl_seconds=5)
        assert _stored_pairs(storage) == [[stored, {"a": 1}]]

    def test_updates_mirror(self, engine: CacheEngine) -> None:
        stored = engine.insert(KEY, "v", COLLECTION, ttl_seconds=5)
        snap = engine.mirror.snapshot()
        assert snap.get(stored) == "v"
        assert snap.version == 1

    def test_duplicates_kept_by_default(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, "old", COLLECTION, ttl_seconds=5)
        clock.advance(1)
        engine.insert(KEY, "new", COLLECTION, ttl_seconds=5)
        assert [v for _, v in _stored_pairs(storage)] == ["old", "new"]
        assert engine.lookup(KEY, COLLECTION) == "old"

    def test_evict_duplicates_replaces_older_entries(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        first = engine.insert(KEY, "old", COLLECTION, ttl_seconds=5)
        clock.advance(1)
        engine.insert(KEY, "new", COLLECTION, ttl_seconds=5, evict_duplicates=True)
        assert [v for _, v in _stored_pairs(storage)] == ["new"]
        assert engine.lookup(KEY, COLLECTION) == "new"
        assert first not in engine.mirror.snapshot()

    def test_same_instant_reinsert_overwrites(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, "old", COLLECTION, ttl_seconds=5)
        engine.insert(KEY, "new", COLLECTION, ttl_seconds=5)
        assert [v for _, v in _stored_pairs(storage)] == ["new"]


class TestInvalidate:
    def test_removes_entry_and_collection(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, "v", COLLECTION, ttl_seconds=5)
        assert engine.invalidate(KEY, COLLECTION) is True
        assert COLLECTION not in storage
        assert engine.lookup(KEY, COLLECTION) is MISS
        assert len(engine.mirror.snapshot()) == 0

    def test_is_idempotent(self, engine: CacheEngine) -> None:
        engine.insert(KEY, "v", COLLECTION, ttl_seconds=5)
        assert engine.invalidate(KEY, COLLECTION) is True
        assert engine.invalidate(KEY, COLLECTION) is True

    def test_absent_key_does_not_write(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        other = engine.insert(logical_key("/other"), 1, COLLECTION, ttl_seconds=5)
        before = storage.get_item(COLLECTION)
        assert engine.invalidate(KEY, COLLECTION) is True
        assert storage.get_item(COLLECTION) == before
        assert other in engine.mirror.snapshot()

    def test_url_containing_separator(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        key = logical_key("/s?a=1&expiration=10")
        engine.insert(key, 1, COLLECTION, ttl_seconds=5)
        assert engine.invalidate(key, COLLECTION) is True
        assert COLLECTION not in storage

    def test_malformed_expiration_is_left_in_place(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        storage.set_item(COLLECTION, json.dumps([[f"{KEY}&expiration=bad", "v"]]))
        assert engine.invalidate(KEY, COLLECTION) is True
        assert engine.lookup(KEY, COLLECTION) == "v"

    def test_only_first_duplicate_is_removed(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, "old", COLLECTION, ttl_seconds=5)
        clock.advance(1)
        engine.insert(KEY, "new", COLLECTION, ttl_seconds=5)
        engine.invalidate(KEY, COLLECTION)
        assert [v for _, v in _stored_pairs(storage)] == ["new"]

    def test_store_failure_returns_false(
        self,
        engine: CacheEngine,
        storage: MemoryStorage,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        storage.set_item(COLLECTION, "not json")
        assert engine.invalidate(KEY, COLLECTION) is False
        assert "Invalidation of" in capsys.readouterr().err


class TestMaintenance:
    def test_clear_removes_collection(
        self, engine: CacheEngine, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        engine.insert(logical_key("/b"), 2, COLLECTION, ttl_seconds=5)
        kept = engine.insert(logical_key("/kept"), 3, "other", ttl_seconds=5)
        assert engine.clear(COLLECTION) == 2
        assert COLLECTION not in storage
        assert dict(engine.mirror.snapshot().entries) == {kept: 3}

    def test_clear_absent_collection(self, engine: CacheEngine) -> None:
        assert engine.clear("missing") == 0

    def test_prune_evicts_only_expired(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        engine.insert(logical_key("/b"), 2, COLLECTION, ttl_seconds=5)
        engine.insert(logical_key("/c"), 3, COLLECTION, ttl_seconds=60)
        clock.advance(10)
        assert engine.prune(COLLECTION) == 2
        assert [v for _, v in _stored_pairs(storage)] == [3]
        assert len(engine.mirror.snapshot()) == 1

    def test_prune_nothing_expired(self, engine: CacheEngine, storage: MemoryStorage) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        before = storage.get_item(COLLECTION)
        assert engine.prune(COLLECTION) == 0
        assert storage.get_item(COLLECTION) == before

    def test_prune_everything_drops_collection(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=1)
        clock.advance(2)
        assert engine.prune(COLLECTION) == 1
        assert COLLECTION not in storage

    def test_entries_report_state_without_evicting(
        self, engine: CacheEngine, clock: FakeClock, storage: MemoryStorage
    ) -> None:
        engine.insert(KEY, 1, COLLECTION, ttl_seconds=5)
        engine.insert(logical_key("/c"), 3, COLLECTION, ttl_seconds=60)
        raw = json.loads(storage.get_item(COLLECTION))
        raw.append([f"{logical_key('/n')}&expiration=x", 4])
        storage.set_item(COLLECTION, json.dumps(raw))
        clock.advance(10)

        infos = engine.entries(COLLECTION)
        assert [i.state for i in infos] == [
            EntryState.EXPIRED,
            EntryState.FRESH,
            EntryState.NEVER,
        ]
        assert infos[0].logical_key == KEY
        assert infos[0].expiration == START_MS + 5000
        assert infos[2].expiration is None
        assert len(_stored_pairs(storage)) == 3
