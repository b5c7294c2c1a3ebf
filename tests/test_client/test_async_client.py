"""Tests for the non-blocking AsyncQueryClient."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from querycache.cache.codec import logical_key
from querycache.client import AsyncQueryClient
from querycache.exceptions import InvalidUsageError, MalformedResponse, NetworkFailure
from querycache.models import QueryArgs, RequestOptions
from querycache.provider import QueryCacheProvider
from querycache.storage import MemoryStorage

from conftest import FakeClock


BASE_URL = "https://api.example.com"


def _async_client(
    provider: QueryCacheProvider, bodies: list[tuple[int, Any]], seen: list[httpx.Request]
) -> AsyncQueryClient:
    """Build a client whose transport replays *bodies* in order, repeating the last."""

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = bodies[min(len(seen), len(bodies)) - 1]
        return httpx.Response(status, json=body)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return provider.async_client(http_client=http)


def test_requires_provider() -> None:
    with pytest.raises(InvalidUsageError):
        AsyncQueryClient(None)  # type: ignore[arg-type]


class TestAsyncQuery:
    def test_miss_then_hit(self, provider: QueryCacheProvider, storage: MemoryStorage) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(200, {"data": {"users": []}})], seen)

        async def run() -> tuple[Any, Any]:
            first = await client.query(QueryArgs(url="/users"))
            second = await client.query(QueryArgs(url="/users"))
            return first, second

        assert asyncio.run(run()) == ({"users": []}, {"users": []})
        assert len(seen) == 1
        assert json.loads(storage.get_item("test_cache"))[0][1] == {"users": []}

    def test_server_error(self, provider: QueryCacheProvider, storage: MemoryStorage) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(500, {"data": 1})], seen)

        assert asyncio.run(client.query("/users")) is None
        assert isinstance(client.error, NetworkFailure)
        assert client.loading is False
        assert "test_cache" not in storage

    def test_malformed_body(self, provider: QueryCacheProvider) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(200, {"nodata": 1})], seen)

        assert asyncio.run(client.query("/users")) is None
        assert isinstance(client.error, MalformedResponse)

    def test_connection_error(self, provider: QueryCacheProvider) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
        client = provider.async_client(http_client=http)
        assert asyncio.run(client.query("/users")) is None
        assert isinstance(client.error, NetworkFailure)

    def test_refetch(self, provider: QueryCacheProvider, clock: FakeClock) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(200, {"data": "old"}), (200, {"data": "new"})], seen)

        async def run() -> Any:
            await client.query("/users")
            clock.advance(1)
            return await client.refetch()

        assert asyncio.run(run()) == "new"
        assert len(seen) == 2

    def test_refetch_before_any_query(self, provider: QueryCacheProvider) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(200, {"data": 1})], seen)
        assert asyncio.run(client.refetch()) is None
        assert seen == []

    def test_invalidate_is_synchronous(
        self, provider: QueryCacheProvider, storage: MemoryStorage
    ) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(200, {"data": 1})], seen)
        assert client.invalidate() is None

        asyncio.run(client.query(QueryArgs(url="/a", options=RequestOptions(method="DELETE"))))
        assert client.invalidate() is True
        assert "test_cache" not in storage

    def test_shares_cache_with_sync_client(self, provider: QueryCacheProvider) -> None:
        seen: list[httpx.Request] = []
        client = _async_client(provider, [(200, {"data": "shared"})], seen)
        asyncio.run(client.query("/users"))

        assert provider.engine.lookup(logical_key("/users"), "test_cache") == "shared"

    def test_context_manager_closes_owned_client(self, provider: QueryCacheProvider) -> None:
        client = provider.async_client()

        async def run() -> None:
            async with client:
                assert client._client is not None

        asyncio.run(run())
        assert client._client is None
