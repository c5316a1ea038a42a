"""mtime + size probing with per-pass de-duplication.

A :class:`StatCache` is created for one discovery pass.  The discovery
scan and the metadata-cache validation both ask it for the same files,
and each file is ``stat``-ed once.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from cmdlaunch.core.models import FileStat
from cmdlaunch.core.protocols import StatProvider
from cmdlaunch.utils.concurrency import AsyncMemo


class OsStatProvider:
    """Concrete :class:`StatProvider` backed by :func:`os.stat`."""

    def stat(self, path: Path) -> FileStat:
        result = os.stat(path)
        return FileStat(mtime_ns=result.st_mtime_ns, size=result.st_size)


class StatCache:
    """Memoizing async front-end over a :class:`StatProvider`."""

    def __init__(self, provider: StatProvider | None = None) -> None:
        self._provider: StatProvider = provider if provider is not None else OsStatProvider()
        self._memo: AsyncMemo[Path, FileStat] = AsyncMemo()

    async def stat(self, path: Path) -> FileStat:
        """Return the stat of *path*; ``OSError`` propagates and is not memoized."""
        return await self._memo.get(
            Path(path),
            lambda: asyncio.to_thread(self._provider.stat, Path(path)),
        )
