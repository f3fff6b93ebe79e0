"""Output routing for wsclient: payloads on stdout, diagnostics on stderr.

``wsclient get`` writes the decoded payload, and nothing else, to stdout so
``wsclient get URL | jq .`` works. Request lifecycle lines, warnings and
errors go to stderr. Payloads are syntax highlighted with Rich when stdout is
a terminal and written as plain text when piped; ``NO_COLOR``, ``TERM=dumb``
and ``--no-color`` switch highlighting off (see https://clig.dev/).

Library modules report through the module-level :func:`debug` and
:func:`warning`. Until an application installs a manager with
:func:`set_output`, the default one is quiet and not verbose, so embedding
:class:`~wsclient.client.Request` prints nothing.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional
from xml.etree.ElementTree import Element, tostring

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """How payloads are rendered. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# level: (plain prefix, rich template, hidden by --quiet)
_DIAGNOSTICS: dict[str, tuple[str, str, bool]] = {
    "info": ("", "{message}", True),
    "success": ("", "[green]{message}[/green]", True),
    "warning": ("Warning: ", "[yellow]Warning:[/yellow] {message}", False),
    "error": ("Error: ", "[bold red]Error:[/bold red] {message}", False),
    "debug": ("[debug] ", "[dim]\\[debug] {message}[/dim]", False),
}


class OutputManager:
    """Writes payloads and diagnostics for one CLI invocation.

    Args:
        format: Payload format; ``AUTO`` is resolved once, here.
        no_color: Plain ``print`` instead of Rich markup on both streams.
        quiet: Hide ``info`` and ``success`` lines. Warnings and errors stay.
        verbose: Show ``debug`` lines (round trips, cancellations).
        output_file: Write payloads to this path instead of stdout.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file

        if format == OutputFormat.AUTO:
            use_rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if use_rich else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Payloads (stdout)
    # ------------------------------------------------------------------ #

    def format_payload(self, payload: Any) -> None:  # noqa: ANN401
        """Write one decoded payload.

        JSON objects and arrays are indented except in ``PLAIN`` mode, where
        they stay on one line for line-oriented tools. XML elements are
        serialised back to markup. Anything else is written as ``str()``.
        """
        text, lexer = self._render(payload)
        if lexer and self._format == OutputFormat.RICH and not self._output_file:
            self._stdout.print(Syntax(text, lexer, theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    def _render(self, payload: Any) -> tuple[str, str]:  # noqa: ANN401
        if isinstance(payload, Element):
            return tostring(payload, encoding="unicode"), "xml"
        if isinstance(payload, (dict, list)):
            indent = None if self._format == OutputFormat.PLAIN else 2
            return json.dumps(payload, indent=indent, ensure_ascii=False, default=str), "json"
        return str(payload), ""

    def print_data(self, text: str) -> None:
        """Write *text* to stdout, or to ``output_file``, ending with a newline."""
        if not self._output_file:
            print(text, file=sys.stdout, flush=True)
            return
        if not text.endswith("\n"):
            text += "\n"
        with open(self._output_file, "w", encoding="utf-8") as f:
            f.write(text)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def _emit(self, level: str, message: str) -> None:
        prefix, template, quietable = _DIAGNOSTICS[level]
        if quietable and self._quiet:
            return
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(template.format(message=escape(message)), highlight=False)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        """Report an error. Shown even with ``--quiet``."""
        self._emit("error", message)

    def debug(self, message: str) -> None:
        """Report a ``[debug]`` line, only in verbose mode."""
        if self._verbose:
            self._emit("debug", message)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide manager
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed manager, or a silent default created on first use."""
    global _output
    if _output is None:
        _output = OutputManager(quiet=True)
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next call builds a silent default."""
    global _output
    _output = None


def format_payload(payload: Any) -> None:  # noqa: ANN401
    get_output().format_payload(payload)


def print_data(text: str) -> None:
    get_output().print_data(text)


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
