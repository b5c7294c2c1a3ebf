"""Entry codec: cache keys with embedded expirations, and the collection format.

A request is identified by its *logical key*::

    endpoint=<url>&method=<METHOD>

Only the URL and method participate, so two requests that differ in body,
headers or query parameters share one entry. When an entry is written, the
expiration (Unix epoch milliseconds) is appended to form the *stored key*::

    endpoint=/users&method=GET&expiration=1767225600000

The expiration is recorded nowhere else. A whole collection is persisted as
the JSON text of an ordered list of ``[stored_key, value]`` pairs.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Optional

from querycache.exceptions import StoreReadFailure, StoreWriteFailure

EXPIRATION_SEPARATOR = "&expiration="

_NUMBER_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def logical_key(url: str, method: Optional[str] = None) -> str:
    """Derive the logical key of a request.

    Args:
        url: The request URL exactly as the caller passed it.
        method: HTTP method; ``None`` or empty means ``GET``. Case-insensitive.
    """
    return f"endpoint={url}&method={(method or 'GET').upper()}"


def encode_key(logical: str, ttl_seconds: float, now_ms: int) -> str:
    """Return the stored key for *logical* expiring *ttl_seconds* after *now_ms*."""
    return f"{logical}{EXPIRATION_SEPARATOR}{now_ms + int(ttl_seconds * 1000)}"


def _split(stored_key: str) -> tuple[str, Optional[str]]:
    """Split *stored_key* at its last separator into (logical key, expiration text).

    URLs may themselves contain ``&expiration=`` in their query string, but
    the appended expiration always comes last.
    """
    head, sep, tail = stored_key.rpartition(EXPIRATION_SEPARATOR)
    if not sep:
        return stored_key, None
    return head, tail


def parse_expiration(stored_key: str) -> float:
    """Return the expiration embedded in *stored_key*, in epoch milliseconds.

    Returns ``math.nan`` when the separator is missing or the segment after
    it is not a decimal number. Callers treat NaN as "never expires".
    """
    segment = _split(stored_key)[1]
    if segment is None or not _NUMBER_RE.match(segment):
        return math.nan
    return float(segment)


def logical_part(stored_key: str) -> str:
    """Return the logical key a stored key was derived from."""
    return _split(stored_key)[0]


def stored_key_for(logical: str, expiration: float) -> Optional[str]:
    """Rebuild the stored key that *expiration* was parsed from.

    Integral expirations are rendered without a fractional part, matching
    :func:`encode_key`. Returns ``None`` for NaN.
    """
    if math.isnan(expiration):
        return None
    if math.isfinite(expiration) and expiration.is_integer():
        rendered = str(int(expiration))
    else:
        rendered = repr(expiration)
    return f"{logical}{EXPIRATION_SEPARATOR}{rendered}"


def is_expired(stored_key: str, now_ms: int) -> bool:
    """True when *stored_key* carries a valid expiration strictly before *now_ms*."""
    expiration = parse_expiration(stored_key)
    return not math.isnan(expiration) and now_ms > expiration


def encode_collection(entries: dict[str, Any]) -> str:
    """Serialise a collection as a JSON pair list, preserving insertion order.

    Raises:
        StoreWriteFailure: If a value is not JSON-serialisable.
    """
    try:
        return json.dumps([[key, value] for key, value in entries.items()])
    except (TypeError, ValueError) as exc:
        raise StoreWriteFailure(f"Cannot serialise cache entries: {exc}") from exc


def decode_collection(text: str) -> dict[str, Any]:
    """Parse a JSON pair list back into an ordered mapping.

    A key that appears twice keeps its first position and its last value.

    Raises:
        StoreReadFailure: If *text* is not JSON or not a list of
            ``[str, value]`` pairs.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise StoreReadFailure(f"Stored collection is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise StoreReadFailure(
            f"Stored collection must be a list of pairs, got {type(data).__name__}"
        )
    entries: dict[str, Any] = {}
    for index, pair in enumerate(data):
        if not isinstance(pair, list) or len(pair) != 2 or not isinstance(pair[0], str):
            raise StoreReadFailure(f"Malformed entry at index {index}: {pair!r}")
        entries[pair[0]] = pair[1]
    return entries
