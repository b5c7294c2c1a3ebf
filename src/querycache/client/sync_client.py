"""Synchronous query client: cache lookup, fetch on miss, populate on success.

:class:`QueryClient` wraps :class:`httpx.Client`. A query first asks the
cache engine for a fresh entry under the request's logical key; only on a
miss does it go to the network. A successful response must be a JSON
object with a ``data`` field, whose value is cached with the configured TTL
and returned.

Failures never propagate out of :meth:`QueryClient.query`,
:meth:`QueryClient.refetch` or :meth:`QueryClient.invalidate`: they are
stored in :attr:`QueryClient.error`, logged, and ``None`` is returned.

See Also:
    :class:`~querycache.client.async_client.AsyncQueryClient` for the
    non-blocking equivalent.
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


class QueryClient(BaseQueryClient):
    """Blocking query client with a persistent, expiring cache.

    Args:
        provider: The provider owning the cache engine and configuration.
        collection_key: Collection for this call site.
        ttl_seconds: Entry lifetime for this call site.
        http_client: Optional pre-built :class:`httpx.Client`. It is used
            as-is and never closed by the query client.

    Example::

        with provider.client(ttl_seconds=60) as users:
            data = users.query(QueryArgs(url="https://api.example.com/users"))
            users.refetch()
    """

    def __init__(
        self,
        provider: QueryCacheProvider,
        collection_key: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(provider, collection_key, ttl_seconds)
        self._client = http_client
        self._owns_client = http_client is None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> QueryClient:
        self._http()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this query client created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    def query(self, args: Union[QueryArgs, str]) -> Any:
        """Return the data for *args*, from the cache when fresh.

        Args:
            args: The request, or a bare URL for a plain GET.

        Returns:
            The cached or freshly fetched ``data`` payload, or ``None`` on
            failure (see :attr:`error`).
        """
        args = coerce_args(args)
        key = self._begin(args)
        try:
            cached = self._lookup(key)
            if cached is not MISS:
                self._set_state(data=cached)
                return cached

            response = self._fetch(args)
            data = self._extract_data(response)
            self._store(key, data)
            self._set_state(data=data)
            return data
        except QueryCacheError as exc:
            self._fail(exc)
            return None
        finally:
            self._set_state(loading=False)

    def refetch(self) -> Any:
        """Invalidate the most recent request and query it again.

        Returns:
            The fresh data, or ``None`` when no request was issued yet,
            invalidation failed, or the new query failed.
        """
        if self._last_args is None:
            return None
        if not self.invalidate():
            return None
        return self.query(self._last_args)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(**self._client_kwargs())
            self._owns_client = True
        return self._client

    def _fetch(self, args: QueryArgs) -> httpx.Response:
        get_output().debug(f"Fetching {args.method} {args.url}")
        try:
            return self._http().request(**self._request_kwargs(args))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkFailure(f"Request to {args.url} failed: {exc}") from exc
