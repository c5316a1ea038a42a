"""Convention-based command discovery.

Layout::

    cmds/
    ├── build/cmd.py              → "build"            (depth 1)
    └── deploy/
        ├── cmd.py                → "deploy"           (depth 1)
        └── staging/cmd.py        → "staging"          (depth 2, parent "deploy")

Discovery never imports a command module.  It stats every entry file,
reuses metadata from the persisted cache where the stat still matches,
and wires two lazy loaders per command (metadata and full definition).
A broken ``cmd.py`` therefore cannot fail discovery; its error surfaces
only when that command is actually requested.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from cmdlaunch.core.models import CommandDefinition, CommandMeta, CommandNode, FileStat
from cmdlaunch.core.registry import Registry
from cmdlaunch.exceptions import CommandsDirectoryNotFoundError
from cmdlaunch.infra.metadata_cache import MetadataCache
from cmdlaunch.infra.module_loader import CommandModuleLoader
from cmdlaunch.infra.stat_cache import StatCache
from cmdlaunch.utils.concurrency import BackgroundTasks, Lazy, bounded_gather

logger = logging.getLogger(__name__)

ENTRY_FILE_NAME: str = "cmd.py"
STAT_CONCURRENCY: int = 10


# ---------------------------------------------------------------------------
# Commands directory resolution
# ---------------------------------------------------------------------------

def resolve_commands_directory(base_dir: Path, cmds_dir: str | Path) -> Path:
    """Locate the commands root.

    An absolute *cmds_dir* is used as-is.  A relative one is probed as
    ``base/cmds_dir``, then ``base/src/cmds_dir``, then
    ``parent(base)/src/cmds_dir``.

    Raises
    ------
    CommandsDirectoryNotFoundError
        When no candidate is an existing directory.
    """
    cmds_path = Path(cmds_dir)
    if cmds_path.is_absolute():
        candidates = [cmds_path]
    else:
        candidates = [
            base_dir / cmds_path,
            base_dir / "src" / cmds_path,
            base_dir.parent / "src" / cmds_path,
        ]

    for candidate in candidates:
        if candidate.is_dir():
            logger.debug("Commands directory: %s", candidate)
            return candidate
        logger.debug("Not a commands directory: %s", candidate)

    raise CommandsDirectoryNotFoundError(candidates)


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CommandLocation:
    """Where a command lives, derived purely from its entry file path."""

    name: str
    file_path: Path
    directory: Path
    depth: int
    parent: str | None


def _skip_dir(name: str) -> bool:
    return name == "__pycache__" or name.startswith((".", "_"))


def _walk_entry_files(root: Path) -> Iterator[Path]:
    for path in sorted(root.rglob(ENTRY_FILE_NAME)):
        relative = path.relative_to(root)
        if len(relative.parts) < 2:
            continue
        if any(_skip_dir(part) for part in relative.parts[:-1]):
            continue
        if path.is_file():
            yield path


def locate(root: Path, file_path: Path) -> CommandLocation:
    """Derive name, depth and parent for *file_path* under *root*."""
    dirs = file_path.relative_to(root).parts[:-1]
    return CommandLocation(
        name=dirs[-1],
        file_path=file_path,
        directory=file_path.parent,
        depth=len(dirs),
        parent=dirs[-2] if len(dirs) > 1 else None,
    )


def scan_commands(root: Path) -> list[CommandLocation]:
    """Find every entry file under *root*, one location per unique name.

    When two directories share a name the shallowest one (then the
    lexicographically first path) wins and the other is logged and
    skipped.
    """
    chosen: dict[str, CommandLocation] = {}
    locations = sorted(
        (locate(root, path) for path in _walk_entry_files(root)),
        key=lambda loc: (loc.depth, str(loc.file_path)),
    )
    for location in locations:
        existing = chosen.get(location.name)
        if existing is not None:
            logger.warning(
                "Duplicate command name %r: keeping %s, ignoring %s",
                location.name,
                existing.file_path,
                location.file_path,
            )
            continue
        chosen[location.name] = location
    return list(chosen.values())


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def _metadata_loader(
    registry: Registry,
    modules: CommandModuleLoader,
    location: CommandLocation,
) -> Lazy[CommandMeta]:
    async def _load() -> CommandMeta:
        meta = await modules.load_metadata(location.file_path, location.name)
        registry.record_metadata(location.name, meta)
        return meta

    return Lazy(_load)


def _definition_loader(
    registry: Registry,
    modules: CommandModuleLoader,
    location: CommandLocation,
) -> Lazy[CommandDefinition]:
    async def _load() -> CommandDefinition:
        definition = await modules.load_definition(location.file_path, location.name)
        registry.record_metadata(location.name, definition.meta)
        return definition

    return Lazy(_load)


async def persist_metadata(registry: Registry, cache: MetadataCache) -> bool:
    """Write the registry's known metadata when it changed.  Never raises.

    Returns whether a write happened.
    """
    if not registry.cache_dirty:
        return False
    # Cleared before the write: metadata recorded while it runs marks the
    # registry dirty again for the next persist.
    registry.cache_dirty = False
    try:
        await cache.save(registry.known_metadata, registry.file_stats, registry.file_paths)
    except Exception as exc:  # noqa: BLE001 - cache persistence is best effort
        logger.debug("Could not persist metadata cache: %s", exc)
        registry.cache_dirty = True
        return False
    return True


async def discover_commands(
    cmds_dir: str | Path,
    base_dir: Path | None = None,
    *,
    modules: CommandModuleLoader | None = None,
    cache: MetadataCache | None = None,
    stat_cache: StatCache | None = None,
    background: BackgroundTasks | None = None,
    stat_concurrency: int = STAT_CONCURRENCY,
) -> Registry:
    """Scan *cmds_dir* and build a :class:`Registry`.

    Parameters
    ----------
    cmds_dir:
        Commands root, absolute or relative to *base_dir*.
    base_dir:
        Directory for relative resolution; defaults to the working directory.
    modules:
        Memoizing module loader shared with the caller, so definitions stay
        cached across rediscovery.
    cache:
        Persisted metadata cache, or ``None`` to disable caching.
    stat_cache:
        Per-pass stat memo; a fresh one is created when omitted.
    background:
        Holder for the fire-and-forget cache write.  Without one the
        write is skipped.

    Raises
    ------
    CommandsDirectoryNotFoundError
        When the commands root cannot be located.
    """
    root = resolve_commands_directory(base_dir if base_dir is not None else Path.cwd(), cmds_dir)
    modules = modules if modules is not None else CommandModuleLoader()
    stats = stat_cache if stat_cache is not None else StatCache()

    locations = await asyncio.to_thread(scan_commands, root)
    logger.debug("Found %d command files under %s", len(locations), root)

    async def _stat(location: CommandLocation) -> FileStat | None:
        try:
            return await stats.stat(location.file_path)
        except OSError as exc:
            logger.warning("Skipping command %r: %s", location.name, exc)
            return None

    file_stats = await bounded_gather(locations, _stat, concurrency=stat_concurrency)
    persisted = await cache.read() if cache is not None else None
    cached = await cache.validate(persisted, stat=stats.stat) if cache is not None else {}

    registry = Registry()
    cache_hits: dict[str, CommandMeta] = {}
    for location, stat in zip(locations, file_stats):
        if stat is None:
            continue

        entry = cached.get(location.name)
        if (
            entry is not None
            and entry.file_path == str(location.file_path)
            and entry.matches(stat)
        ):
            load_metadata: Lazy[CommandMeta] = Lazy.resolved(entry.metadata)
            cache_hits[location.name] = entry.metadata
        else:
            load_metadata = _metadata_loader(registry, modules, location)

        node = CommandNode(
            name=location.name,
            path=location.directory,
            file_path=location.file_path,
            depth=location.depth,
            parent=location.parent,
            load_definition=_definition_loader(registry, modules, location),
            load_metadata=load_metadata,
        )
        registry.add_node(node, stat)

    # Recorded after every node is added so alias completeness is judged
    # against the full hierarchy.
    for name, meta in cache_hits.items():
        registry.record_metadata(name, meta, from_cache=True)

    registry.link_hierarchy()

    if persisted is not None and set(persisted.entries) != set(cache_hits):
        registry.cache_dirty = True

    if cache is not None and background is not None:
        background.spawn(persist_metadata(registry, cache), name="cmdlaunch-persist-cache")

    return registry
