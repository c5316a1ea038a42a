"""The discovered command registry and name/chain resolution.

A :class:`Registry` is produced by discovery and owned by one
:class:`RegistryContext`, which the dispatcher holds for its lifetime.
There is no module-level registry: two launchers (or two tests) never
share state.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cmdlaunch.core.models import (
    CommandDefinition,
    CommandMeta,
    CommandNode,
    FileStat,
)
from cmdlaunch.exceptions import CommandNotFoundError
from cmdlaunch.utils.concurrency import Lazy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainResolution:
    """Nodes resolved from a command chain, root first."""

    nodes: tuple[CommandNode, ...]

    @property
    def target(self) -> CommandNode:
        """The invoked (last) command."""
        return self.nodes[-1]

    @property
    def parent(self) -> CommandNode | None:
        """The command directly above the target, if any."""
        return self.nodes[-2] if len(self.nodes) > 1 else None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(node.name for node in self.nodes)


@dataclass
class Registry:
    """Discovery output: hierarchy, loaders, aliases and cache bookkeeping."""

    hierarchy: dict[str, CommandNode] = field(default_factory=dict)
    root_names: set[str] = field(default_factory=set)
    alias_map: dict[str, str] = field(default_factory=dict)

    file_paths: dict[str, str] = field(default_factory=dict)
    file_stats: dict[str, FileStat] = field(default_factory=dict)
    known_metadata: dict[str, CommandMeta] = field(default_factory=dict)

    cache_dirty: bool = False
    """True once metadata not backed by a valid cache entry is known."""

    aliases_complete: bool = False
    """True once every command's metadata (hence every alias) is known."""

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def command_loaders(self) -> dict[str, Lazy[CommandDefinition]]:
        return {name: node.load_definition for name, node in self.hierarchy.items()}

    @property
    def metadata_loaders(self) -> dict[str, Lazy[CommandMeta]]:
        return {name: node.load_metadata for name, node in self.hierarchy.items()}

    def names(self) -> list[str]:
        return sorted(self.hierarchy)

    def display_path(self, name: str) -> tuple[str, ...]:
        """Names from the root down to *name*, e.g. ``("deploy", "staging")``."""
        path: list[str] = []
        node: CommandNode | None = self.hierarchy.get(name)
        while node is not None:
            path.append(node.name)
            node = self.hierarchy.get(node.parent) if node.parent else None
        return tuple(reversed(path))

    def snapshot(self) -> dict[str, Any]:
        """Structural, comparable view (loaders excluded)."""
        return {
            "roots": sorted(self.root_names),
            "aliases": dict(sorted(self.alias_map.items())),
            "commands": {
                name: {
                    "path": str(node.path),
                    "file": str(node.file_path),
                    "depth": node.depth,
                    "parent": node.parent,
                    "children": sorted(node.children),
                }
                for name, node in sorted(self.hierarchy.items())
            },
        }

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_node(self, node: CommandNode, stat: FileStat) -> None:
        self.hierarchy[node.name] = node
        self.file_paths[node.name] = str(node.file_path)
        self.file_stats[node.name] = stat
        if node.depth == 1:
            self.root_names.add(node.name)

    def link_hierarchy(self) -> None:
        """Attach every node to its parent's children map."""
        for name, node in self.hierarchy.items():
            if node.parent is None:
                continue
            parent = self.hierarchy.get(node.parent)
            if parent is None:
                logger.warning(
                    "Command %r has no parent command %r (missing cmd.py?)",
                    name,
                    node.parent,
                )
                continue
            parent.children[name] = node

    def record_metadata(self, name: str, meta: CommandMeta, *, from_cache: bool = False) -> None:
        """Remember *meta* for persistence and register its aliases."""
        previous = self.known_metadata.get(name)
        self.known_metadata[name] = meta
        if not from_cache and previous != meta:
            self.cache_dirty = True
        for alias in meta.aliases:
            self.add_alias(alias, name)
        if len(self.known_metadata) >= len(self.hierarchy):
            self.aliases_complete = True

    def add_alias(self, alias: str, target: str) -> None:
        if alias == target:
            return
        if alias in self.hierarchy:
            logger.warning("Alias %r of %r shadows a command name; ignored", alias, target)
            return
        existing = self.alias_map.get(alias)
        if existing is not None and existing != target:
            logger.warning(
                "Alias %r already points to %r; ignoring it for %r", alias, existing, target
            )
            return
        self.alias_map[alias] = target

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_command(self, name_or_alias: str) -> str:
        """Return the alias target when registered, else the input unchanged."""
        return self.alias_map.get(name_or_alias, name_or_alias)

    def resolve_command_chain(self, tokens: Sequence[str]) -> ChainResolution:
        """Resolve ``[cmd]`` or ``[parent, child, ...]`` to nodes.

        Raises
        ------
        CommandNotFoundError
            For an unknown first token (listing every command), or for a
            later token that is not a child of the previous one (listing
            only that command's children).  The error always names the
            token as typed.
        """
        if not tokens:
            raise ValueError("Empty command chain")

        first = tokens[0]
        node = self.hierarchy.get(self.resolve_command(first))
        if node is None:
            raise CommandNotFoundError(first, self.names())

        nodes = [node]
        for token in tokens[1:]:
            previous = nodes[-1]
            child = self.hierarchy.get(self.resolve_command(token))
            if child is None or child.parent != previous.name:
                raise CommandNotFoundError(token, list(previous.children), parent=previous.name)
            nodes.append(child)

        return ChainResolution(nodes=tuple(nodes))


class RegistryContext:
    """Explicit holder for one launcher's registry, with a reset operation."""

    def __init__(self) -> None:
        self._registry: Registry | None = None

    def get(self) -> Registry | None:
        return self._registry

    def set(self, registry: Registry) -> None:
        self._registry = registry

    def clear(self) -> None:
        """Drop the registry so the next access rediscovers commands."""
        self._registry = None
