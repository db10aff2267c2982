"""Diagnostics output for the communication layer.

Everything this package reports about itself (retries, cache write
failures, dropped stream frames) goes to **stderr** through a Rich
console, so it never mixes with whatever the host application prints on
stdout. Colour follows ``NO_COLOR`` and ``TERM=dumb``.

:class:`OutputManager` holds the Rich console and the quiet/verbose flags.
It is created once at startup (see :class:`~bookbite.container.Container`)
and installed via :func:`set_output`; library code reaches it through
:func:`get_output`.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape


class OutputManager:
    """Routes diagnostic messages to stderr with Rich styling.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages. Warnings are always
            shown.
        verbose: Enable debug-level messages (per-attempt request traces).
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    def info(self, message: str) -> None:
        """Print an informational message. Suppressed by ``quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(escape(message))

    def warning(self, message: str) -> None:
        """Print a yellow warning. NOT suppressed by ``quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def debug(self, message: str) -> None:
        """Print a debug message. Only shown when ``verbose`` is active."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None
