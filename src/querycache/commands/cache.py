"""Cache commands -- query through the cache and maintain collections.

Registers ``get``, ``entries``, ``invalidate``, ``prune`` and ``clear`` on
the root application. Each command resolves the effective configuration
(CLI flags from the root callback, environment, project and user config),
builds a :class:`~querycache.provider.QueryCacheProvider`, and closes it
before returning.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

import typer

from querycache.exceptions import QueryCacheError
from querycache.output import error, format_response, info, print_table, success


def _resolve(ctx: typer.Context):
    """Effective config for this invocation, honouring root-callback overrides."""
    from querycache.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(
        cli_collection=obj.get("collection"),
        cli_ttl=obj.get("ttl"),
        cli_storage=obj.get("storage"),
        cli_base_url=obj.get("base_url"),
    )


@contextmanager
def _provider(ctx: typer.Context) -> Iterator[Any]:
    """Open a provider for the resolved config, exiting cleanly on config errors."""
    from querycache.provider import QueryCacheProvider

    try:
        config = _resolve(ctx)
        provider = QueryCacheProvider.from_config(config)
    except QueryCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    try:
        yield provider
    finally:
        provider.close()


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        error(f"Invalid header (expected 'Name: value'): {raw}")
        raise typer.Exit(code=2)
    return name.strip(), value.strip()


def _format_expiration(expiration: Optional[int]) -> str:
    if expiration is None:
        return "-"
    try:
        moment = datetime.fromtimestamp(expiration / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return str(expiration)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def get_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Endpoint URL (absolute, or relative to --base-url)."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header as 'Name: value'. Repeatable."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-d", help="Request body; sent as JSON when it parses as JSON."
    ),
    refresh: bool = typer.Option(
        False, "--refresh", help="Invalidate the cached entry and fetch again."
    ),
) -> None:
    """Fetch the ``data`` payload of URL, answering from the cache when fresh.

    Example::

        querycache get https://api.example.com/users
        querycache --ttl 60 --base-url https://api.example.com get /users
        querycache get /users --refresh
    """
    from querycache.cache.codec import logical_key
    from querycache.models import QueryArgs, RequestOptions

    headers = dict(_parse_header(h) for h in header or [])
    json_body: Any = None
    raw_body: Optional[str] = None
    if body is not None:
        try:
            json_body = json.loads(body)
        except (json.JSONDecodeError, ValueError):
            raw_body = body

    args = QueryArgs(
        url=url,
        options=RequestOptions(method=method, headers=headers, json_body=json_body, body=raw_body),
    )

    with _provider(ctx) as provider:
        with provider.client() as client:
            if refresh:
                provider.engine.invalidate(
                    logical_key(url, method), provider.cache_config.collection_key
                )
            data = client.query(args)
            if client.error is not None:
                code = getattr(client.error, "exit_code", 1)
                raise typer.Exit(code=code)
            format_response(data)


def entries_command(ctx: typer.Context) -> None:
    """List the entries of the active collection with their expiration state.

    Example::

        querycache entries
        querycache --collection my-app --json entries
    """
    with _provider(ctx) as provider:
        collection = provider.cache_config.collection_key
        try:
            infos = provider.engine.entries(collection)
        except QueryCacheError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None

        if not infos:
            info(f"Collection '{collection}' is empty.")
            return
        rows = [
            [i.logical_key, _format_expiration(i.expiration), i.state.value]
            for i in infos
        ]
        print_table(["Key", "Expires", "State"], rows, title=collection)


def invalidate_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Endpoint URL as it was queried."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
) -> None:
    """Evict the cached entry for URL and METHOD from the active collection."""
    from querycache.cache.codec import logical_key

    with _provider(ctx) as provider:
        collection = provider.cache_config.collection_key
        key = logical_key(url, method)
        if not provider.engine.invalidate(key, collection):
            raise typer.Exit(code=1)
        success(f"Invalidated {key}")


def prune_command(ctx: typer.Context) -> None:
    """Evict every expired entry of the active collection."""
    with _provider(ctx) as provider:
        collection = provider.cache_config.collection_key
        try:
            count = provider.engine.prune(collection)
        except QueryCacheError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None
        success(f"Pruned {count} expired entr{'y' if count == 1 else 'ies'} from '{collection}'.")


def clear_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Remove the whole active collection from the store."""
    with _provider(ctx) as provider:
        collection = provider.cache_config.collection_key
        if not force and not typer.confirm(f"Remove collection '{collection}'?"):
            info("Cancelled.")
            raise typer.Exit()
        try:
            count = provider.engine.clear(collection)
        except QueryCacheError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None
        success(f"Removed '{collection}' ({count} entr{'y' if count == 1 else 'ies'}).")


def register_cache_commands(app: typer.Typer) -> None:
    """Attach the cache commands to *app*."""
    app.command("get")(get_command)
    app.command("entries")(entries_command)
    app.command("invalidate")(invalidate_command)
    app.command("prune")(prune_command)
    app.command("clear")(clear_command)
