"""Command dispatch: argv → resolved command → parsed flags → handler.

Invocation shapes
-----------------
* ``prog`` / ``prog --help``            → global help.
* ``prog --version``                    → ``<prog> <version>`` when configured.
* ``prog build [flags]``                → single-level dispatch.
* ``prog deploy staging [flags]``       → chain dispatch; flags are split
  between ``deploy`` (context only, never invoked) and ``staging``.

This module is the launcher's error boundary: every
:class:`~cmdlaunch.exceptions.LauncherError` raised while dispatching is
reported (or handed to ``on_error``) and turned into exit code 1.  Any
other exception, including one raised inside a handler, propagates to
the caller.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from collections.abc import Iterable, Sequence

from cmdlaunch.cli import exit_codes
from cmdlaunch.cli.console import console, err_console, escape
from cmdlaunch.cli.help import render_command_help, render_global_help, summarize_all
from cmdlaunch.config import LauncherOptions
from cmdlaunch.core.models import CommandContext, CommandDefinition, CommandNode
from cmdlaunch.core.parser import parse_args
from cmdlaunch.core.protocols import ModuleLoader, StatProvider
from cmdlaunch.core.registry import ChainResolution, Registry, RegistryContext
from cmdlaunch.core.splitter import split_chain_tokens
from cmdlaunch.exceptions import CommandLoadError, LauncherError
from cmdlaunch.infra.discovery import discover_commands, persist_metadata
from cmdlaunch.infra.metadata_cache import MetadataCache
from cmdlaunch.infra.module_loader import CommandModuleLoader
from cmdlaunch.infra.stat_cache import StatCache
from cmdlaunch.utils.concurrency import BackgroundTasks, SingleFlight
from cmdlaunch.utils.naming import is_flag

logger = logging.getLogger(__name__)

HELP_FLAGS: frozenset[str] = frozenset({"--help", "-h"})
VERSION_FLAGS: frozenset[str] = frozenset({"--version", "-V"})


class Launcher:
    """Discovers commands on first use and dispatches invocations to them.

    Parameters
    ----------
    options:
        Launcher configuration.  Defaults to ``LauncherOptions()``.
    module_loader:
        Imports command files.  Injected by tests to count imports.
    stat_provider:
        Probes file mtime + size.  Injected by tests to fake stats.

    One launcher owns one registry, one module memo and one metadata
    cache handle.  Command files are imported at most once per launcher.
    """

    def __init__(
        self,
        options: LauncherOptions | None = None,
        *,
        module_loader: ModuleLoader | None = None,
        stat_provider: StatProvider | None = None,
    ) -> None:
        self.options: LauncherOptions = options if options is not None else LauncherOptions()
        self._context = RegistryContext()
        self._modules = CommandModuleLoader(module_loader)
        self._stat_provider = stat_provider
        self._background = BackgroundTasks()
        self._discovery: SingleFlight[str, Registry] = SingleFlight()
        self.cache: MetadataCache | None = (
            MetadataCache(
                self.options.cache_dir,
                validation_concurrency=self.options.validation_concurrency,
            )
            if self.options.cache_enabled
            else None
        )

    # ------------------------------------------------------------------
    # Registry lifecycle
    # ------------------------------------------------------------------

    async def get_registry(self) -> Registry:
        """Return the registry, discovering commands on first use.

        Concurrent first calls share one discovery pass.
        """
        registry = self._context.get()
        if registry is not None:
            return registry
        return await self._discovery.do("registry", self._discover)

    async def _discover(self) -> Registry:
        registry = await discover_commands(
            self.options.cmds_dir,
            self.options.base_dir,
            modules=self._modules,
            cache=self.cache,
            stat_cache=StatCache(self._stat_provider),
            background=self._background,
            stat_concurrency=self.options.stat_concurrency,
        )
        self._context.set(registry)
        logger.debug("Discovered %d commands", len(registry.hierarchy))
        return registry

    def reset(self) -> None:
        """Forget the registry so the next call rediscovers commands.

        Definitions already loaded stay memoized per file path.
        """
        self._context.clear()

    async def drain(self) -> None:
        """Wait for background work such as the cache write."""
        await self._background.drain()

    async def _persist(self) -> None:
        registry = self._context.get()
        if registry is not None and self.cache is not None:
            await persist_metadata(registry, self.cache)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, argv: Sequence[str] | None = None) -> int:
        """Dispatch *argv* (``sys.argv[1:]`` when ``None``) and return the exit code."""
        tokens = list(sys.argv[1:] if argv is None else argv)
        try:
            return await self._dispatch(tokens)
        except LauncherError as exc:
            logger.debug("Dispatch failed: %s", exc, exc_info=True)
            await self._report(exc)
            return exit_codes.GENERAL_ERROR
        finally:
            await self.drain()
            await self._persist()

    def run_sync(self, argv: Sequence[str] | None = None) -> int:
        """Blocking wrapper around :meth:`run` for scripts without an event loop."""
        return asyncio.run(self.run(argv))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, tokens: list[str]) -> int:
        if not tokens or tokens[0] in HELP_FLAGS:
            registry = await self.get_registry()
            console.print(
                await render_global_help(
                    registry,
                    prog=self.options.prog,
                    version=self.options.version,
                    concurrency=self.options.metadata_concurrency,
                )
            )
            return exit_codes.SUCCESS

        if tokens[0] in VERSION_FLAGS and self.options.version:
            console.print(f"{escape(self.options.prog)} {escape(self.options.version)}")
            return exit_codes.SUCCESS

        registry = await self.get_registry()
        names = await self._command_path(registry, tokens)
        resolution = registry.resolve_command_chain(names)
        rest = tokens[len(names):]

        parent = resolution.parent
        if parent is None:
            return await self._dispatch_single(registry, resolution, rest)
        return await self._dispatch_chain(registry, resolution, parent, rest)

    async def _command_path(self, registry: Registry, tokens: Sequence[str]) -> list[str]:
        """Leading tokens that name commands: the first one, then each
        further non-flag token while the current command has children."""
        first = tokens[0]
        if first not in registry.hierarchy and first not in registry.alias_map:
            await self._complete_aliases(registry, registry.hierarchy.values())

        names = [first]
        node = registry.hierarchy.get(registry.resolve_command(first))
        for token in tokens[1:]:
            if node is None or not node.children or is_flag(token):
                break
            if token not in node.children and token not in registry.alias_map:
                await self._complete_aliases(registry, node.children.values())
            names.append(token)
            child = registry.hierarchy.get(registry.resolve_command(token))
            node = child if child is not None and child.parent == node.name else None
        return names

    async def _complete_aliases(
        self,
        registry: Registry,
        nodes: Iterable[CommandNode],
    ) -> None:
        """Load metadata for *nodes* so their aliases get registered."""
        if registry.aliases_complete:
            return
        pending = [node for node in nodes if not node.load_metadata.loaded]
        if not pending:
            return
        logger.debug("Loading metadata of %d commands to resolve aliases", len(pending))
        await summarize_all(registry, pending, concurrency=self.options.metadata_concurrency)

    async def _dispatch_single(
        self,
        registry: Registry,
        resolution: ChainResolution,
        rest: list[str],
    ) -> int:
        target = resolution.target
        definition = await target.load_definition()

        if any(token in HELP_FLAGS for token in rest):
            await self._print_command_help(registry, definition, resolution)
            return exit_codes.SUCCESS

        args = parse_args(rest, definition.args)
        await self._invoke(definition, CommandContext(args=args, chain=resolution.names))
        return exit_codes.SUCCESS

    async def _dispatch_chain(
        self,
        registry: Registry,
        resolution: ChainResolution,
        parent: CommandNode,
        rest: list[str],
    ) -> int:
        parent_definition, definition = await asyncio.gather(
            parent.load_definition(),
            resolution.target.load_definition(),
        )

        if any(token in HELP_FLAGS for token in rest):
            await self._print_command_help(registry, definition, resolution)
            return exit_codes.SUCCESS

        split = split_chain_tokens(
            rest,
            parent_definition.args,
            definition.args,
            policy=self.options.shared_flag_policy,
        )
        logger.debug("Chain %s: parent=%s child=%s", resolution.names, split.parent, split.child)

        parent_args = parse_args(split.parent, parent_definition.args) if split.parent else {}
        args = parse_args(split.child, definition.args)
        await self._invoke(
            definition,
            CommandContext(args=args, parent_args=parent_args, chain=resolution.names),
        )
        return exit_codes.SUCCESS

    async def _print_command_help(
        self,
        registry: Registry,
        definition: CommandDefinition,
        resolution: ChainResolution,
    ) -> None:
        children: list[CommandNode] = list(resolution.target.children.values())
        subcommands = (
            await summarize_all(registry, children, concurrency=self.options.metadata_concurrency)
            if children
            else []
        )
        console.print(
            render_command_help(
                definition,
                prog=self.options.prog,
                chain=resolution.names,
                subcommands=subcommands,
            )
        )

    @staticmethod
    async def _invoke(definition: CommandDefinition, context: CommandContext) -> None:
        result = definition.handler(context)
        if inspect.isawaitable(result):
            await result

    # ------------------------------------------------------------------
    # Error reporting
    # ------------------------------------------------------------------

    async def _report(self, exc: LauncherError) -> None:
        if self.options.on_error is not None:
            result = self.options.on_error(exc)
            if inspect.isawaitable(result):
                await result
            return

        err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        if exc.hint:
            err_console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")
        if isinstance(exc, CommandLoadError):
            cause = f"{type(exc.cause).__name__}: {exc.cause}"
            err_console.print(f"[dim]Cause:[/dim] {escape(cause)}")

