"""Custom exception hierarchy for cmdlaunch.

Every error the launcher raises on purpose inherits from
:class:`LauncherError`.  The dispatcher's error boundary catches exactly
this base class; anything else (including exceptions raised inside a
command handler) is left to propagate.

Each class carries a machine-readable :attr:`LauncherError.code` so host
applications can branch on the failure kind without string matching.

Hierarchy
---------
LauncherError
├── CommandNotFoundError
├── ArgumentValidationError
├── CommandLoadError
└── CommandsDirectoryNotFoundError
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class LauncherError(Exception):
    """Base exception for all cmdlaunch errors."""

    code: str = "LAUNCHER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Resolution ------------------------------------------------------------

class CommandNotFoundError(LauncherError):
    """Raised when a command or sub-command name cannot be resolved.

    *available* is scoped to the relevant search space: every known
    command for a top-level miss, only the parent's children for a
    sub-command miss.
    """

    code = "COMMAND_NOT_FOUND"

    def __init__(
        self,
        name: str,
        available: Sequence[str],
        *,
        parent: str | None = None,
    ) -> None:
        self.name: str = name
        self.available: tuple[str, ...] = tuple(sorted(available))
        self.parent: str | None = parent

        if parent is None:
            message = f"Command not found: {name}"
            label = "Available commands"
        else:
            message = f"Sub-command not found: {name} under {parent}"
            label = f"Available sub-commands of {parent}"

        hint = f"{label}: {', '.join(self.available)}" if self.available else None
        super().__init__(message, hint=hint)


# --- Argument parsing ------------------------------------------------------

class ArgumentValidationError(LauncherError):
    """Raised for unknown flags, bad values, and missing required keys."""

    code = "ARGUMENT_VALIDATION"

    def __init__(self, arg_name: str, detail: str) -> None:
        self.arg_name: str = arg_name
        self.detail: str = detail
        super().__init__(f"Invalid argument '{arg_name}': {detail}")


# --- Loading ---------------------------------------------------------------

class CommandLoadError(LauncherError):
    """Raised when a command module is missing or malformed.

    Only raised when that command's metadata or definition is actually
    requested, never during discovery.
    """

    code = "COMMAND_LOAD"

    def __init__(self, command_name: str, cause: BaseException) -> None:
        self.command_name: str = command_name
        self.cause: BaseException = cause
        super().__init__(
            f"Failed to load command '{command_name}'",
            hint="Check that cmd.py exposes a handler, an args schema and metadata.",
        )


class CommandsDirectoryNotFoundError(LauncherError):
    """Raised when no candidate commands directory exists."""

    code = "COMMANDS_DIR_NOT_FOUND"

    def __init__(self, checked: Sequence[Path]) -> None:
        self.checked: tuple[Path, ...] = tuple(checked)
        super().__init__(
            "Commands directory not found. Checked: "
            + ", ".join(str(path) for path in self.checked),
        )
