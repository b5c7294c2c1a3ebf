"""Typer application and CLI entry point for querycache.

The ``querycache`` command fetches JSON endpoints through the persistent
cache and inspects or maintains its collections from the shell. Built-in
sub-commands are registered at import time:

* ``get``, ``entries``, ``invalidate``, ``prune``, ``clear`` --
  :mod:`querycache.commands.cache`;
* ``config show|set|reset`` -- :mod:`querycache.commands.config`.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`querycache.config`: Configuration resolution.
    :mod:`querycache.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from querycache import __version__
from querycache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="querycache",
    help="Fetch JSON endpoints through a persistent, expiring cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"querycache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    collection: Optional[str] = typer.Option(
        None, "--collection", "-c", help="Collection key to read and write."
    ),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", min=0, help="Entry lifetime in seconds for new entries."
    ),
    storage: Optional[str] = typer.Option(
        None, "--storage", help="Storage backend: file, diskcache, memory."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Prefix for relative URLs."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output (cache hits, misses, evictions)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~querycache.output.OutputManager` and stores
    the configuration overrides in ``ctx.obj`` for sub-commands.
    """
    from querycache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["collection"] = collection
    ctx.obj["ttl"] = ttl
    ctx.obj["storage"] = storage
    ctx.obj["base_url"] = base_url


def _register_commands() -> None:
    from querycache.commands.cache import register_cache_commands
    from querycache.commands.config import config_app

    register_cache_commands(app)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from querycache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``querycache`` console script.

    :class:`~querycache.exceptions.QueryCacheError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from querycache.exceptions import QueryCacheError
        from querycache.output import error

        if isinstance(exc, QueryCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
