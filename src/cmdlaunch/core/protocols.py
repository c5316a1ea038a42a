"""Protocols (interfaces) for the launcher's external collaborators.

Discovery and the metadata cache depend only on these contracts, so tests
can count imports or fake file stats without touching the real
filesystem or interpreter import machinery.
"""

from __future__ import annotations

from pathlib import Path
from types import ModuleType
from typing import Protocol

from cmdlaunch.core.models import FileStat


class ModuleLoader(Protocol):
    """Contract for loading a command module from its file path."""

    def load(self, path: Path) -> ModuleType:
        """Import the Python file at *path* and return the module object.

        Called from a worker thread.  Any exception is wrapped into
        :class:`~cmdlaunch.exceptions.CommandLoadError` by the caller.
        """
        ...  # pragma: no cover


class StatProvider(Protocol):
    """Contract for the mtime + size probe used as a cache-validity proxy."""

    def stat(self, path: Path) -> FileStat:
        """Return the current :class:`FileStat` of *path*.

        Raises
        ------
        OSError
            When *path* does not exist or cannot be inspected.
        """
        ...  # pragma: no cover
