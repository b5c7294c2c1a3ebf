"""Terminal rendering for cached payloads and cache diagnostics.

Cached payloads and collection listings are the only things written to
stdout, so ``querycache get /users --json | jq`` always sees clean data.
Everything the cache has to say about itself (hits, misses, expired
entries, store failures) goes to stderr, gated by ``--quiet`` and
``--verbose``.

Rendering is chosen once per process: ``--json``, ``--plain``, or Rich
when stdout is a terminal and colour is allowed (``NO_COLOR``,
``TERM=dumb`` and ``--no-color`` all switch it off). The CLI callback
installs an :class:`OutputManager` with :func:`set_output`; the engine and
the query clients reach it through :func:`get_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterator, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How payloads and entry tables are rendered on stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> Iterator[str]:
    """Flatten a payload into tab-separated lines.

    Mappings become ``key<TAB>value``; lists yield one line per item, with
    mapping items reduced to their values.
    """
    if isinstance(data, dict):
        for key, value in data.items():
            yield f"{key}\t{value}"
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                yield "\t".join(str(value) for value in item.values())
            else:
                yield str(item)
    else:
        yield str(data)


class OutputManager:
    """Render payloads on stdout and cache diagnostics on stderr.

    Args:
        format: Payload rendering; ``AUTO`` picks Rich on a colour terminal
            and plain text otherwise.
        no_color: Strip colour and markup from both streams.
        quiet: Drop informational and success messages. Warnings and errors
            are always shown.
        verbose: Show per-lookup debug lines (hit, miss, expired).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich else OutputFormat.PLAIN
        self._format = format

        self._data_console = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(format == OutputFormat.RICH),
        )
        self._diag_console = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # stdout

    def _emit(self, line: str) -> None:
        print(line, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Write a cached or freshly fetched payload to stdout."""
        if self._format == OutputFormat.JSON:
            self._emit(_to_json(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self._emit(line)
        else:
            self._data_console.print(
                Syntax(_to_json(data), "json", theme="monokai", word_wrap=True)
            )

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write a listing such as ``entries`` to stdout.

        JSON mode emits one object per row keyed by header; plain mode emits
        a header line followed by tab-separated rows. *title* is only shown
        by the Rich table.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self._emit(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for cells in [headers, *rows]:
                self._emit("\t".join(cells))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._data_console.print(table)

    # stderr

    def _diagnostic(self, message: str, label: str = "", style: str = "") -> None:
        """Write one diagnostic line, styled unless colour is off.

        *message* is escaped so keys such as ``[client_query_cache]`` are not
        read as Rich markup.
        """
        if self._no_color:
            print(f"{label}{message}", file=sys.stderr, flush=True)
            return
        if label:
            text = f"[{style}]{escape(label.rstrip())}[/{style}] {escape(message)}"
        elif style:
            text = f"[{style}]{escape(message)}[/{style}]"
        else:
            text = escape(message)
        self._diag_console.print(text)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        self._diagnostic(message, label="Warning: ", style="yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, label="Error: ", style="bold red")

    def debug(self, message: str) -> None:
        """Lookup trace, e.g. ``Cache hit: endpoint=/users&method=GET [c]``."""
        if self._verbose:
            self._diagnostic(message, label="[debug] ", style="dim")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`; a default one is built on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager so the next :func:`get_output` rebuilds it."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
