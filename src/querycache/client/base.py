"""State handling shared by :class:`QueryClient` and :class:`AsyncQueryClient`.

Both clients run the same request lifecycle and differ only in how the
network fetch is awaited. Everything that does not touch the network lives
here: remembering the last request, publishing :class:`QueryState`
snapshots, validating response bodies, and delegating to the cache engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import httpx

from querycache.cache.codec import logical_key
from querycache.exceptions import InvalidUsageError, MalformedResponse, NetworkFailure
from querycache.models import QueryArgs, QueryState
from querycache.output import get_output

if TYPE_CHECKING:
    from querycache.provider import QueryCacheProvider

StateSubscriber = Callable[[QueryState], None]


def coerce_args(args: Union[QueryArgs, str]) -> QueryArgs:
    """Accept a bare URL string as shorthand for ``QueryArgs(url=...)``."""
    if isinstance(args, str):
        return QueryArgs(url=args)
    return args


class BaseQueryClient:
    """Request-lifecycle state shared by the sync and async query clients.

    Args:
        provider: The provider owning the cache engine and configuration.
            Required; clients cannot exist outside a provider.
        collection_key: Collection for this call site. Defaults to the
            provider's ``cache.collection_key``.
        ttl_seconds: Entry lifetime for this call site. Defaults to the
            provider's ``cache.ttl_seconds``.
    """

    def __init__(
        self,
        provider: QueryCacheProvider,
        collection_key: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        if provider is None:
            raise InvalidUsageError(
                "Query clients must be created from a QueryCacheProvider"
            )
        cache_config = provider.cache_config
        self._provider = provider
        self._engine = provider.engine
        self._collection_key = collection_key or cache_config.collection_key
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else cache_config.ttl_seconds
        self._evict_duplicates = cache_config.evict_duplicates_on_insert
        self._state = QueryState()
        self._subscribers: list[StateSubscriber] = []
        self._last_args: Optional[QueryArgs] = None

    # ------------------------------------------------------------------ #
    # Observable state
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> QueryState:
        """The current state snapshot."""
        return self._state

    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[Exception]:
        return self._state.error

    @property
    def last_args(self) -> Optional[QueryArgs]:
        """Arguments of the most recent ``query`` call, if any."""
        return self._last_args

    @property
    def collection_key(self) -> str:
        return self._collection_key

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def subscribe(self, callback: StateSubscriber) -> Callable[[], None]:
        """Call *callback* with every new :class:`QueryState`. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _set_state(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        for callback in list(self._subscribers):
            callback(self._state)

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def invalidate(self) -> Optional[bool]:
        """Evict the cached entry of the most recent request.

        Returns:
            ``None`` if no request has been issued yet, otherwise the
            engine's success flag.
        """
        if self._last_args is None:
            return None
        key = logical_key(self._last_args.url, self._last_args.method)
        return self._engine.invalidate(key, self._collection_key)

    # ------------------------------------------------------------------ #
    # Lifecycle helpers
    # ------------------------------------------------------------------ #

    def _begin(self, args: QueryArgs) -> str:
        """Remember *args*, enter the loading state, and return the logical key."""
        self._last_args = args
        self._set_state(loading=True, error=None)
        return logical_key(args.url, args.method)

    def _lookup(self, key: str) -> Any:
        return self._engine.lookup(key, self._collection_key)

    def _store(self, key: str, data: Any) -> None:
        self._engine.insert(
            key,
            data,
            self._collection_key,
            self._ttl_seconds,
            evict_duplicates=self._evict_duplicates,
        )

    def _fail(self, exc: Exception) -> None:
        self._set_state(error=exc)
        get_output().error(f"Query failed: {exc}")

    def _request_kwargs(self, args: QueryArgs) -> dict[str, Any]:
        """Translate :class:`QueryArgs` into ``httpx`` request arguments."""
        kwargs: dict[str, Any] = {"method": args.method, "url": args.url}
        options = args.options
        if options is None:
            return kwargs
        if options.headers:
            kwargs["headers"] = dict(options.headers)
        if options.params:
            kwargs["params"] = dict(options.params)
        if options.json_body is not None:
            kwargs["json"] = options.json_body
        elif options.body is not None:
            kwargs["content"] = options.body
        return kwargs

    def _client_kwargs(self) -> dict[str, Any]:
        """Constructor arguments for an owned ``httpx`` client."""
        request = self._provider.request_config
        return {
            "base_url": request.base_url or "",
            "timeout": request.timeout,
            "verify": request.verify_ssl,
            "follow_redirects": True,
        }

    @staticmethod
    def _extract_data(response: httpx.Response) -> Any:
        """Return the ``data`` field of a successful JSON response.

        Raises:
            NetworkFailure: On a non-2xx status.
            MalformedResponse: If the body is not JSON or has no ``data`` field.
        """
        if not response.is_success:
            raise NetworkFailure(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponse(f"Response body is not valid JSON: {exc}") from exc
        if not isinstance(body, dict) or "data" not in body:
            raise MalformedResponse("Response body must be a JSON object with a 'data' field")
        return body["data"]
