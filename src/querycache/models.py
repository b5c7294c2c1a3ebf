"""Canonical Pydantic models shared across all querycache modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`StorageConfig`, :class:`RequestConfig`,
    :class:`OutputConfig`, and :class:`GlobalConfig`.

**Request and state models** -- passed between the query clients and the
cache engine:
    :class:`RequestOptions`, :class:`QueryArgs`, :class:`QueryState`,
    :class:`EntryState`, and :class:`EntryInfo`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_COLLECTION_KEY = "client_query_cache"
"""Persistent-store key under which entries are kept when no collection is named."""

DEFAULT_TTL_SECONDS = 300
"""Lifetime of a cached entry when no TTL is configured."""


# --- Configuration ---


class CacheConfig(BaseModel):
    """Cache partition and expiry settings stored in :class:`GlobalConfig`.

    Every query client reads these as its defaults; a call site may override
    ``collection_key`` and ``ttl_seconds`` individually.
    """

    collection_key: str = Field(
        default=DEFAULT_COLLECTION_KEY,
        min_length=1,
        description="Persistent-store key of the named collection",
    )
    ttl_seconds: int = Field(
        default=DEFAULT_TTL_SECONDS, ge=0, description="Entry lifetime in seconds"
    )
    evict_duplicates_on_insert: bool = Field(
        default=False,
        description="Drop older entries with the same logical key before inserting",
    )


class StorageBackend(str, enum.Enum):
    """Persistent-store primitives that can back a collection."""

    FILE = "file"
    DISKCACHE = "diskcache"
    MEMORY = "memory"


class StorageConfig(BaseModel):
    """Which persistent-store primitive to use and where it lives.

    When ``path`` is ``None`` the backend is placed under the XDG cache
    directory (see :func:`~querycache.config.get_cache_dir`).
    """

    backend: StorageBackend = Field(default=StorageBackend.FILE)
    path: Optional[str] = Field(default=None, description="Storage directory override")


class RequestConfig(BaseModel):
    """Default HTTP settings applied to every fetch made by a query client."""

    base_url: Optional[str] = Field(default=None, description="Prefix for relative URLs")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(default="auto", description="Output format: auto, json, plain, rich")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/querycache/config.json``.

    Loaded and saved by :func:`~querycache.config.load_global_config` and
    :func:`~querycache.config.save_global_config`. See
    :func:`~querycache.config.resolve_config` for the precedence chain.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Requests ---


class RequestOptions(BaseModel):
    """Options forwarded to the network fetch.

    Only ``method`` contributes to the cache identity of a request; headers,
    query parameters and bodies are sent but ignored by key derivation.
    """

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    json_body: Any = None
    body: Optional[str] = None


class QueryArgs(BaseModel):
    """The arguments of a single ``query`` call.

    Example::

        QueryArgs(url="/users")
        QueryArgs(url="/users", options=RequestOptions(method="POST", json_body={"q": 1}))
    """

    model_config = ConfigDict(frozen=True)

    url: str
    options: Optional[RequestOptions] = None

    @property
    def method(self) -> str:
        """The HTTP method, defaulting to ``GET``."""
        if self.options is None or not self.options.method:
            return "GET"
        return self.options.method.upper()


# --- State ---


class QueryState(BaseModel):
    """Observable state of a query client.

    Instances are immutable; every transition replaces the client's state
    with a new copy so observers always see a consistent snapshot.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: Any = None
    loading: bool = False
    error: Optional[Exception] = None


class EntryState(str, enum.Enum):
    """Freshness of a stored entry at inspection time."""

    FRESH = "fresh"
    EXPIRED = "expired"
    NEVER = "never"  # expiration missing or malformed


class EntryInfo(BaseModel):
    """One entry of a collection, as reported by :meth:`CacheEngine.entries`."""

    stored_key: str
    logical_key: str
    expiration: Optional[int] = None
    state: EntryState
    value: Any = None
