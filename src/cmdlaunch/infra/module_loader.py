"""Import command modules by file path and memoize what is read from them.

This module is the **only** place that executes command code.  Every
failure, from a syntax error to a malformed export, is re-raised as
:class:`~cmdlaunch.exceptions.CommandLoadError` tagged with the command
name, so nothing raw escapes to discovery or the dispatcher.

Two independent memo caches sit on top of one shared import per path:

* metadata: only the ``meta``/``cfg`` part of the export is read;
* definition: handler, args and metadata are all validated.

Listing commands or rendering the global help only ever touches the
first one.
"""

from __future__ import annotations

import asyncio
import hashlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType

from cmdlaunch.core.command import definition_from_module, metadata_from_module
from cmdlaunch.core.models import CommandDefinition, CommandMeta
from cmdlaunch.core.protocols import ModuleLoader
from cmdlaunch.exceptions import CommandLoadError
from cmdlaunch.utils.concurrency import AsyncMemo

logger = logging.getLogger(__name__)

_MODULE_PREFIX = "_cmdlaunch_cmd"


def module_name_for(path: Path) -> str:
    """Stable, unique ``sys.modules`` key for the file at *path*."""
    resolved = str(path.resolve())
    digest = hashlib.sha1(resolved.encode("utf-8")).hexdigest()[:12]
    stem = path.parent.name.replace("-", "_").replace(".", "_") or "cmd"
    return f"{_MODULE_PREFIX}_{stem}_{digest}"


class ImportlibModuleLoader:
    """Concrete :class:`ModuleLoader` backed by :mod:`importlib.util`."""

    def load(self, path: Path) -> ModuleType:
        name = module_name_for(path)
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot create an import spec for {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise
        return module


class CommandModuleLoader:
    """Per-path memoizing loader for command metadata and definitions.

    One instance lives as long as the launcher, so a command file is
    imported at most once per process.
    """

    def __init__(self, loader: ModuleLoader | None = None) -> None:
        self._loader: ModuleLoader = loader if loader is not None else ImportlibModuleLoader()
        self._modules: AsyncMemo[Path, ModuleType] = AsyncMemo()
        self._metadata: AsyncMemo[Path, CommandMeta] = AsyncMemo()
        self._definitions: AsyncMemo[Path, CommandDefinition] = AsyncMemo()

    async def _module(self, path: Path, command_name: str) -> ModuleType:
        async def _import() -> ModuleType:
            logger.debug("Importing command %r from %s", command_name, path)
            try:
                return await asyncio.to_thread(self._loader.load, path)
            except Exception as exc:
                raise CommandLoadError(command_name, exc) from exc

        return await self._modules.get(path, _import)

    async def load_metadata(self, path: Path, command_name: str) -> CommandMeta:
        """Read the command's display metadata without validating its handler."""

        async def _read() -> CommandMeta:
            module = await self._module(path, command_name)
            try:
                return metadata_from_module(module)
            except (TypeError, ValueError) as exc:
                raise CommandLoadError(command_name, exc) from exc

        return await self._metadata.get(path, _read)

    async def load_definition(self, path: Path, command_name: str) -> CommandDefinition:
        """Read and validate the full command definition."""

        async def _read() -> CommandDefinition:
            module = await self._module(path, command_name)
            try:
                return definition_from_module(module)
            except (TypeError, ValueError) as exc:
                raise CommandLoadError(command_name, exc) from exc

        return await self._definitions.get(path, _read)

    def clear(self) -> None:
        """Forget memoized results; already-imported modules stay in ``sys.modules``."""
        self._modules.clear()
        self._metadata.clear()
        self._definitions.clear()
