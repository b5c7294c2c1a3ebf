"""Asynchronous query client -- mirrors :class:`~querycache.client.sync_client.QueryClient`.

:class:`AsyncQueryClient` wraps :class:`httpx.AsyncClient`. The only
suspension point of :meth:`AsyncQueryClient.query` is the network fetch;
the cache engine and the persistent store are synchronous.

Overlapping queries for the same request are not coalesced: two concurrent
misses both fetch and both write, and the later full-collection write wins.

.. note::
   :meth:`AsyncQueryClient.invalidate` is a plain method because
   invalidation performs no network I/O.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Union

import httpx

from querycache.cache.engine import MISS
from querycache.client.base import BaseQueryClient, coerce_args
from querycache.exceptions import NetworkFailure, QueryCacheError
from querycache.models import QueryArgs
from querycache.output import get_output

if TYPE_CHECKING:
    from querycache.provider import QueryCacheProvider


class AsyncQueryClient(BaseQueryClient):
    """Non-blocking query client with a persistent, expiring cache.

    Args:
        provider: The provider owning the cache engine and configuration.
        collection_key: Collection for this call site.
        ttl_seconds: Entry lifetime for this call site.
        http_client: Optional pre-built :class:`httpx.AsyncClient`. It is
            used as-is and never closed by the query client.

    Example::

        async with provider.async_client() as users:
            data = await users.query("https://api.example.com/users")
    """

    def __init__(
        self,
        provider: QueryCacheProvider,
        collection_key: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(provider, collection_key, ttl_seconds)
        self._client = http_client
        self._owns_client = http_client is None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncQueryClient:
        self._http()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this query client created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    async def query(self, args: Union[QueryArgs, str]) -> Any:
        """Return the data for *args*, from the cache when fresh.

        Behaves identically to
        :meth:`~querycache.client.sync_client.QueryClient.query` but awaits
        the fetch.
        """
        args = coerce_args(args)
        key = self._begin(args)
        try:
            cached = self._lookup(key)
            if cached is not MISS:
                self._set_state(data=cached)
                return cached

            response = await self._fetch(args)
            data = self._extract_data(response)
            self._store(key, data)
            self._set_state(data=data)
            return data
        except QueryCacheError as exc:
            self._fail(exc)
            return None
        finally:
            self._set_state(loading=False)

    async def refetch(self) -> Any:
        """Invalidate the most recent request and query it again."""
        if self._last_args is None:
            return None
        if not self.invalidate():
            return None
        return await self.query(self._last_args)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(**self._client_kwargs())
            self._owns_client = True
        return self._client

    async def _fetch(self, args: QueryArgs) -> httpx.Response:
        get_output().debug(f"Fetching {args.method} {args.url}")
        try:
            return await self._http().request(**self._request_kwargs(args))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkFailure(f"Request to {args.url} failed: {exc}") from exc
