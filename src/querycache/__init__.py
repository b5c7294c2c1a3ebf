"""querycache -- an expiring, persistent cache in front of JSON HTTP fetches.

A query is identified by its URL and HTTP method. The first query fetches
over the network and stores the response's ``data`` payload in a named
collection of a persistent key-value store, stamped with an expiration.
Later queries for the same request are answered from the store until the
entry expires or is invalidated, surviving process restarts.

Typical use::

    from querycache import QueryCacheProvider
    from querycache.storage import FileStorage

    provider = QueryCacheProvider(FileStorage("/tmp/my-app"))
    with provider.client(ttl_seconds=120) as users:
        data = users.query("https://api.example.com/users")
        users.refetch()

Modules:
    app: Typer application and CLI entry point.
    cache: Key codec, collection store, mirror and cache engine.
    client: Sync and async query clients.
    provider: Composition root sharing one engine and mirror.
    storage: Persistent-store primitives.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"

from querycache.cache.engine import MISS  # noqa: E402
from querycache.client import AsyncQueryClient, QueryClient  # noqa: E402
from querycache.models import QueryArgs, QueryState, RequestOptions  # noqa: E402
from querycache.provider import QueryCacheProvider  # noqa: E402

__all__ = [
    "MISS",
    "AsyncQueryClient",
    "QueryArgs",
    "QueryCacheProvider",
    "QueryClient",
    "QueryState",
    "RequestOptions",
    "__version__",
]
