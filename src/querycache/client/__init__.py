"""Query clients for querycache.

Provides synchronous and asynchronous clients that put the expiring cache
in front of :mod:`httpx`:

    :class:`QueryClient` -- blocking client backed by :class:`httpx.Client`.
    :class:`AsyncQueryClient` -- non-blocking client backed by :class:`httpx.AsyncClient`.

Both are created from a :class:`~querycache.provider.QueryCacheProvider`
and expose the same ``query`` / ``refetch`` / ``invalidate`` operations
plus an observable :class:`~querycache.models.QueryState`.

Example::

    from querycache import QueryCacheProvider
    from querycache.storage import FileStorage

    provider = QueryCacheProvider(FileStorage("/tmp/qc"))
    with provider.client() as client:
        users = client.query("https://api.example.com/users")
"""

from querycache.client.async_client import AsyncQueryClient
from querycache.client.sync_client import QueryClient

__all__ = ["QueryClient", "AsyncQueryClient"]
