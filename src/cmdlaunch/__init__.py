"""cmdlaunch: convention-based command discovery and dispatch for CLIs.

Commands live in ``<cmds>/<name>/cmd.py`` (nested for subcommands) and are
imported only when they are actually run.  Display metadata is cached on
disk between runs.
"""

from cmdlaunch.cli.app import run_launcher
from cmdlaunch.cli.dispatcher import Launcher
from cmdlaunch.config import LauncherOptions
from cmdlaunch.core.command import define_args, define_command, define_meta
from cmdlaunch.core.models import ArgDefinition, ArgType, CommandContext, CommandMeta
from cmdlaunch.core.splitter import SharedFlagPolicy
from cmdlaunch.exceptions import (
    ArgumentValidationError,
    CommandLoadError,
    CommandNotFoundError,
    CommandsDirectoryNotFoundError,
    LauncherError,
)
from cmdlaunch.version import __version__

__all__: list[str] = [
    "ArgDefinition",
    "ArgType",
    "ArgumentValidationError",
    "CommandContext",
    "CommandLoadError",
    "CommandMeta",
    "CommandNotFoundError",
    "CommandsDirectoryNotFoundError",
    "Launcher",
    "LauncherError",
    "LauncherOptions",
    "SharedFlagPolicy",
    "__version__",
    "define_args",
    "define_command",
    "define_meta",
    "run_launcher",
]
