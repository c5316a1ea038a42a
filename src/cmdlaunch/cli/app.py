"""Process entry points for cmdlaunch.

* :func:`cli` backs the ``cmdlaunch`` console script (commands directory
  taken from ``CMDLAUNCH_CMDS_DIR`` or ``./cmds``).
* :func:`run_launcher` is what a host tool calls from its own entry
  file: ``run_launcher(__file__, prog="mytool")``.

Both share one script-level error boundary.  :class:`LauncherError` is
already reported by the dispatcher; the boundary only catches those
raised before dispatch starts (for example while options are built) and
``KeyboardInterrupt``.  Any other exception propagates with its traceback.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, NoReturn

from cmdlaunch.cli import exit_codes
from cmdlaunch.cli.console import err_console, escape
from cmdlaunch.cli.dispatcher import Launcher
from cmdlaunch.config import LauncherOptions
from cmdlaunch.exceptions import LauncherError
from cmdlaunch.logging import configure_logging, resolve_level
from cmdlaunch.version import __version__


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: Sequence[str] | None = None, **overrides: Any) -> int:
    """Run the launcher once.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.
    overrides:
        :class:`LauncherOptions` fields that win over the environment.

    Returns
    -------
    int
        OS process exit code.
    """
    overrides.setdefault("prog", "cmdlaunch")
    overrides.setdefault("version", __version__)
    options = LauncherOptions.from_env(**overrides)
    configure_logging(resolve_level(options.log_level, verbose=options.verbose))
    return asyncio.run(Launcher(options).run(argv))


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def _guarded(run: Callable[[], int]) -> int:
    try:
        return run()
    except LauncherError as exc:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        if exc.hint:
            err_console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")
        return exit_codes.GENERAL_ERROR
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Aborted by user.[/yellow]")
        return exit_codes.KEYBOARD_INTERRUPT


def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point."""
    sys.exit(_guarded(main))


def run_launcher(
    entry_file: str | Path,
    argv: Sequence[str] | None = None,
    **options: Any,
) -> NoReturn:
    """Dispatch from a host tool's entry file and exit the process.

    A relative ``cmds_dir`` (default ``"cmds"``) is resolved against the
    directory containing *entry_file*.

    Usage example
    -------------
        # mytool/main.py
        from cmdlaunch import run_launcher

        if __name__ == "__main__":
            run_launcher(__file__, prog="mytool", version="1.2.0")
    """
    options.setdefault("base_dir", Path(entry_file).resolve().parent)
    options.setdefault("prog", Path(sys.argv[0]).stem or "cmdlaunch")
    options.setdefault("version", None)
    sys.exit(_guarded(lambda: main(argv, **options)))
