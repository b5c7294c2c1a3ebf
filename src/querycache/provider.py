"""Composition root tying storage, cache engine and query clients together.

A :class:`QueryCacheProvider` owns exactly one collection store, one
in-memory mirror and one cache engine. Every query client it creates shares
that mirror, so a value fetched through one client is immediately visible to
any observer of :attr:`QueryCacheProvider.mirror`.

The provider is passed explicitly to whoever needs it; there is no module
level instance.
"""

from __future__ import annotations

from typing import Optional

import httpx

from querycache.cache.engine import CacheEngine, Clock
from querycache.cache.mirror import CacheMirror
from querycache.cache.store import CollectionStore
from querycache.client.async_client import AsyncQueryClient
from querycache.client.sync_client import QueryClient
from querycache.models import CacheConfig, GlobalConfig, RequestConfig
from querycache.storage.base import KeyValueStorage
from querycache.storage.factory import create_storage


class QueryCacheProvider:
    """Shared cache services for a process or session.

    Args:
        storage: The persistent-store primitive.
        cache_config: Default collection, TTL and duplicate-eviction policy.
        request_config: Defaults for HTTP clients the query clients create.
        clock: Millisecond clock; injectable for tests.

    Example::

        provider = QueryCacheProvider(MemoryStorage(), CacheConfig(ttl_seconds=60))
        with provider.client() as client:
            client.query("https://api.example.com/users")
        provider.mirror.snapshot()
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        cache_config: Optional[CacheConfig] = None,
        request_config: Optional[RequestConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._storage = storage
        self._cache_config = cache_config or CacheConfig()
        self._request_config = request_config or RequestConfig()
        self._mirror = CacheMirror()
        self._engine = CacheEngine(CollectionStore(storage), self._mirror, clock)

    @classmethod
    def from_config(
        cls,
        config: GlobalConfig,
        clock: Optional[Clock] = None,
    ) -> QueryCacheProvider:
        """Build a provider, and its storage backend, from a resolved config."""
        return cls(
            create_storage(config.storage),
            cache_config=config.cache,
            request_config=config.request,
            clock=clock,
        )

    # ------------------------------------------------------------------ #
    # Shared services
    # ------------------------------------------------------------------ #

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    @property
    def engine(self) -> CacheEngine:
        return self._engine

    @property
    def mirror(self) -> CacheMirror:
        return self._mirror

    @property
    def cache_config(self) -> CacheConfig:
        return self._cache_config

    @property
    def request_config(self) -> RequestConfig:
        return self._request_config

    # ------------------------------------------------------------------ #
    # Client factories
    # ------------------------------------------------------------------ #

    def client(
        self,
        collection_key: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> QueryClient:
        """Create a blocking query client for one call site."""
        return QueryClient(self, collection_key, ttl_seconds, http_client)

    def async_client(
        self,
        collection_key: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> AsyncQueryClient:
        """Create a non-blocking query client for one call site."""
        return AsyncQueryClient(self, collection_key, ttl_seconds, http_client)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Close the storage primitive."""
        self._storage.close()

    def __enter__(self) -> QueryCacheProvider:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
