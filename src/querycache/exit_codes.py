"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~querycache.exceptions.QueryCacheError` subclass.
Shell wrappers can inspect the exit code of the ``querycache`` command to
tell a network failure from a corrupt store without parsing stderr.

Example::

    $ querycache get https://api.example.com/users
    $ echo $?
    6   # EXIT_NETWORK_FAILURE -- the fetch failed or returned a non-2xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NETWORK_FAILURE = 6
"""The fetch raised (timeout, DNS failure, connection refused) or returned a non-2xx status."""

EXIT_MALFORMED_RESPONSE = 7
"""The response body was not JSON, or not an object with a ``data`` field."""

EXIT_STORE_READ_FAILURE = 8
"""A persisted collection could not be read or decoded."""

EXIT_STORE_WRITE_FAILURE = 9
"""A collection could not be serialised or the storage backend rejected the write."""
