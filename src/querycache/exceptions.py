"""Exception hierarchy for querycache.

All exceptions inherit from :class:`QueryCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`querycache.exit_codes`.
The query clients catch ``QueryCacheError`` at their public boundary and
turn it into observable error state; the CLI entry point in
:func:`querycache.app.main` exits with the error's code.

Subclass hierarchy::

    QueryCacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- NetworkFailure      (exit 6)
    +-- MalformedResponse   (exit 7)
    +-- StoreReadFailure    (exit 8)
    +-- StoreWriteFailure   (exit 9)
    +-- ConfigError         (exit 1)
"""

from querycache.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MALFORMED_RESPONSE,
    EXIT_NETWORK_FAILURE,
    EXIT_STORE_READ_FAILURE,
    EXIT_STORE_WRITE_FAILURE,
)


class QueryCacheError(Exception):
    """Base exception for all querycache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`querycache.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(QueryCacheError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class NetworkFailure(QueryCacheError):
    """Raised when the fetch itself fails or the server answers with a non-2xx status.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status code, or ``None`` when no response was
            received (timeout, DNS failure, connection refused).
    """

    exit_code = EXIT_NETWORK_FAILURE

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(QueryCacheError):
    """Raised when a response body is not JSON or lacks the ``data`` field."""

    exit_code = EXIT_MALFORMED_RESPONSE


class StoreReadFailure(QueryCacheError):
    """Raised when a persisted collection is not a valid serialised pair list."""

    exit_code = EXIT_STORE_READ_FAILURE


class StoreWriteFailure(QueryCacheError):
    """Raised when a collection cannot be serialised or the backend rejects the write."""

    exit_code = EXIT_STORE_WRITE_FAILURE


class ConfigError(QueryCacheError):
    """Raised for configuration problems (invalid JSON, unknown storage backend)."""

    exit_code = EXIT_GENERIC_FAILURE
