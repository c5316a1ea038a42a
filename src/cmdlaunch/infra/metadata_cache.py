"""Durable, cross-process cache of command display metadata.

The cache is one JSON file::

    {
      "version": "1.0.0",
      "entries": {
        "build": {"metadata": {...}, "filePath": "...", "mtime": 0, "size": 0}
      }
    }

An entry is trusted only while the live file's mtime + size still match
what was recorded.  Invalidation is per entry: a stale or vanished file,
or a malformed record, drops that one entry.  Only a version mismatch
(or an unreadable file) drops everything.

mtime + size is a proxy, not a content hash.  It is good enough here
because a false hit can only produce a stale *help string*; command
definitions are always read from the module itself.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path

from cmdlaunch.core.models import CacheData, CacheEntry, CommandMeta, FileStat
from cmdlaunch.infra.stat_cache import StatCache
from cmdlaunch.utils.concurrency import bounded_gather

logger = logging.getLogger(__name__)

CACHE_VERSION: str = "1.0.0"
"""Bump whenever the persisted shape or its meaning changes."""

CACHE_FILE_NAME: str = "metadata.json"

DEFAULT_CACHE_DIR: Path = Path.home() / ".cmdlaunch" / "cache" / "launcher"

VALIDATION_CONCURRENCY: int = 20

StatFunc = Callable[[Path], Awaitable[FileStat]]


class MetadataCache:
    """Load, validate, save and clear the persisted metadata file.

    Parameters
    ----------
    cache_dir:
        Directory holding ``metadata.json``.  Created on first save.
    version:
        Schema tag written on save and required on load.
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        *,
        version: str = CACHE_VERSION,
        validation_concurrency: int = VALIDATION_CONCURRENCY,
    ) -> None:
        self.cache_dir: Path = Path(cache_dir) if cache_dir is not None else DEFAULT_CACHE_DIR
        self.version: str = version
        self._validation_concurrency = validation_concurrency

    @property
    def path(self) -> Path:
        return self.cache_dir / CACHE_FILE_NAME

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _read_sync(self) -> CacheData | None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.debug("Ignoring unreadable metadata cache %s: %s", self.path, exc)
            return None

        if not isinstance(raw, Mapping) or raw.get("version") != self.version:
            logger.debug("Metadata cache version mismatch; ignoring %s", self.path)
            return None

        raw_entries = raw.get("entries")
        if not isinstance(raw_entries, Mapping):
            logger.debug("Ignoring metadata cache without entries: %s", self.path)
            return None

        entries: dict[str, CacheEntry] = {}
        for name, raw_entry in raw_entries.items():
            try:
                entries[name] = CacheEntry.from_dict(raw_entry)
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Dropping malformed metadata cache entry %r: %s", name, exc)
        return CacheData(version=self.version, entries=entries)

    async def read(self) -> CacheData | None:
        """Return the persisted state as-is (no staleness check).

        ``None`` when the file is absent, corrupt, or of another version.
        """
        return await asyncio.to_thread(self._read_sync)

    async def load_entries(self, *, stat: StatFunc | None = None) -> dict[str, CacheEntry]:
        """Return every persisted entry whose file still has the recorded stat.

        *stat* defaults to a fresh :class:`StatCache`; discovery passes its
        own so each file is stat-ed once per pass.
        """
        return await self.validate(await self.read(), stat=stat)

    async def validate(
        self,
        data: CacheData | None,
        *,
        stat: StatFunc | None = None,
    ) -> dict[str, CacheEntry]:
        """Keep the entries of *data* whose file still has the recorded stat."""
        if data is None:
            return {}

        stat_func = stat if stat is not None else StatCache().stat

        async def _check(item: tuple[str, CacheEntry]) -> tuple[str, CacheEntry | None]:
            name, entry = item
            try:
                live = await stat_func(Path(entry.file_path))
            except OSError:
                return name, None
            return name, entry if entry.matches(live) else None

        results = await bounded_gather(
            data.entries.items(),
            _check,
            concurrency=self._validation_concurrency,
        )
        valid = {name: entry for name, entry in results if entry is not None}
        logger.debug(
            "Metadata cache: %d of %d entries still valid", len(valid), len(data.entries)
        )
        return valid

    async def load(self, *, stat: StatFunc | None = None) -> dict[str, CommandMeta] | None:
        """Return validated metadata by command name, or ``None`` if nothing validates."""
        entries = await self.load_entries(stat=stat)
        if not entries:
            return None
        return {name: entry.metadata for name, entry in entries.items()}

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _write_sync(self, data: CacheData) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(f".{os.getpid()}.tmp")
        tmp_path.write_text(json.dumps(data.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def save(
        self,
        metadata: Mapping[str, CommandMeta],
        file_stats: Mapping[str, FileStat],
        file_paths: Mapping[str, str],
    ) -> CacheData:
        """Overwrite the persisted entry set and return what was written.

        Commands lacking a stat or a path are left out.
        """
        entries: dict[str, CacheEntry] = {}
        for name, meta in metadata.items():
            stat = file_stats.get(name)
            file_path = file_paths.get(name)
            if stat is None or file_path is None:
                continue
            entries[name] = CacheEntry(
                metadata=meta,
                file_path=file_path,
                mtime=stat.mtime_ns,
                size=stat.size,
            )

        data = CacheData(version=self.version, entries=entries)
        await asyncio.to_thread(self._write_sync, data)
        logger.debug("Saved %d metadata cache entries to %s", len(entries), self.path)
        return data

    def clear(self) -> None:
        """Delete the cache file if present."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
