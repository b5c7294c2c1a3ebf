"""Built-in CLI commands for querycache.

:mod:`~querycache.commands.cache` holds the cache commands registered on the
root app; :mod:`~querycache.commands.config` holds the ``config`` group.
"""
