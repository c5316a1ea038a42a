"""CLI console helpers with optional Rich support.

This module avoids module-level imports of Rich so help, version and
error output keep working when Rich is not installed.  Messages are
written with Rich console markup; the plain fallback strips the style
tags this package emits and prints the rest unchanged.
"""

from __future__ import annotations

import re
import sys
from typing import Any

_STYLE = r"(?:bold|dim|red|green|yellow|cyan|magenta)"
_STYLE_TAG = re.compile(rf"\[/?(?:{_STYLE}(?: {_STYLE})*)?\]")


def _load_rich_console_class() -> type[Any] | None:
    """Return ``rich.console.Console``, or ``None`` when Rich is missing."""
    try:
        from rich.console import Console
    except ModuleNotFoundError:
        return None
    return Console


def get_rich_console(*, stderr: bool = False) -> Any | None:
    """Create a Rich console for stdout (or stderr), or ``None`` without Rich."""
    console_class = _load_rich_console_class()
    if console_class is None:
        return None
    return console_class(stderr=stderr, soft_wrap=True, highlight=False, emoji=False)


def escape(text: str) -> str:
    """Escape user-supplied *text* so Rich prints it literally."""
    try:
        from rich.markup import escape as rich_escape
    except ModuleNotFoundError:
        return text
    return rich_escape(text)


def strip_markup(text: str) -> str:
    """Remove the style tags used by this package and unescape ``\\[``."""
    return _STYLE_TAG.sub("", text).replace("\\[", "[")


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with Rich fallback."""

    def __init__(self, *, stderr: bool) -> None:
        self._stderr = stderr

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain print."""
        rich_console = get_rich_console(stderr=self._stderr)
        if rich_console is None:
            stream = sys.stderr if self._stderr else sys.stdout
            print(*(strip_markup(str(obj)) for obj in objects), file=stream)
            return
        rich_console.print(*objects)


console = _ConsoleProxy(stderr=False)
"""Standard output: help and version text."""

err_console = _ConsoleProxy(stderr=True)
"""Standard error: error messages and hints."""
