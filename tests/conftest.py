"""Shared test fixtures for querycache.

Provides a controllable millisecond clock, in-memory storage, engines and
providers wired to them, isolated XDG config directories, and a CLI runner.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from querycache.cache import CacheEngine, CacheMirror, CollectionStore
from querycache.models import CacheConfig
from querycache.output import OutputFormat, OutputManager, reset_output, set_output
from querycache.provider import QueryCacheProvider
from querycache.storage import MemoryStorage


START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = START_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests():
    """Install a quiet, colourless OutputManager and reset it after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; resetting forces a fresh manager on next use.
    """
    set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    """An empty in-memory persistent-store primitive."""
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> CollectionStore:
    return CollectionStore(storage)


@pytest.fixture
def mirror() -> CacheMirror:
    return CacheMirror()


@pytest.fixture
def engine(store: CollectionStore, mirror: CacheMirror, clock: FakeClock) -> CacheEngine:
    """A cache engine over in-memory storage driven by the fake clock."""
    return CacheEngine(store, mirror, clock)


@pytest.fixture
def provider(storage: MemoryStorage, clock: FakeClock) -> QueryCacheProvider:
    """A provider over in-memory storage with a 5 second default TTL."""
    return QueryCacheProvider(
        storage,
        CacheConfig(collection_key="test_cache", ttl_seconds=5),
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path, forces the XDG layout, clears all
    QUERYCACHE_* environment variables and changes the working directory
    to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("querycache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "QUERYCACHE_COLLECTION",
        "QUERYCACHE_TTL",
        "QUERYCACHE_STORAGE",
        "QUERYCACHE_BASE_URL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
