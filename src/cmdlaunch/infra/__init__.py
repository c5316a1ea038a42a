"""Infrastructure layer: the filesystem and the import machinery.

This layer scans the commands directory, stats and imports command
files, and persists the metadata cache.  Every failure while importing
or reading a command module is re-raised as
:class:`~cmdlaunch.exceptions.CommandLoadError`.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
"""

from cmdlaunch.infra.discovery import discover_commands, resolve_commands_directory
from cmdlaunch.infra.metadata_cache import CACHE_VERSION, MetadataCache
from cmdlaunch.infra.module_loader import CommandModuleLoader, ImportlibModuleLoader
from cmdlaunch.infra.stat_cache import OsStatProvider, StatCache

__all__: list[str] = [
    "CACHE_VERSION",
    "CommandModuleLoader",
    "ImportlibModuleLoader",
    "MetadataCache",
    "OsStatProvider",
    "StatCache",
    "discover_commands",
    "resolve_commands_directory",
]
