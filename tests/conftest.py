"""Shared pytest fixtures and configuration for the cmdlaunch test suite.

Guidelines
----------
* No network access in any test.
* Command trees are written under ``tmp_path``; nothing reads the real
  home directory (the metadata cache is redirected per test).
* Async code is driven with ``asyncio.run`` from plain test functions.
"""

from __future__ import annotations

import json
import textwrap
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest

from cmdlaunch.infra import metadata_cache
from cmdlaunch.infra.module_loader import ImportlibModuleLoader

_TEMPLATE = '''\
import json

from cmdlaunch import define_args, define_command, define_meta

RECORD = {record!r}
NAME = {name!r}


def handler(ctx):
    with open(RECORD, "a", encoding="utf-8") as fh:
        fh.write(json.dumps({{
            "command": NAME,
            "args": ctx.args,
            "parent_args": ctx.parent_args,
            "chain": list(ctx.chain),
        }}) + "\\n")


command = define_command(
    handler=handler,
    args=define_args({args!r}),
    meta=define_meta({name!r}, {description!r}, aliases={aliases!r}, examples={examples!r}),
)
'''


class CommandTree:
    """Writes ``<root>/<path>/cmd.py`` files whose handlers log their calls."""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.root = base / "cmds"
        self.root.mkdir(parents=True)
        self.record = base / "invocations.jsonl"

    def add(
        self,
        path: str,
        *,
        args: Mapping[str, Mapping[str, Any]] | None = None,
        description: str = "",
        aliases: Sequence[str] = (),
        examples: Sequence[str] = (),
    ) -> Path:
        """Create a recording command at *path* (``"deploy/staging"``)."""
        name = path.rsplit("/", 1)[-1]
        source = _TEMPLATE.format(
            record=str(self.record),
            name=name,
            args=dict(args or {}),
            description=description,
            aliases=list(aliases),
            examples=list(examples),
        )
        return self.write(path, source)

    def write(self, path: str, source: str) -> Path:
        """Create ``cmd.py`` at *path* with arbitrary *source*."""
        directory = self.root / path
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / "cmd.py"
        file_path.write_text(textwrap.dedent(source), encoding="utf-8")
        return file_path

    def invocations(self) -> list[dict[str, Any]]:
        if not self.record.exists():
            return []
        return [
            json.loads(line)
            for line in self.record.read_text(encoding="utf-8").splitlines()
            if line
        ]


class CountingLoader(ImportlibModuleLoader):
    """Real importer that remembers every path it imported."""

    def __init__(self) -> None:
        self.loaded: list[Path] = []

    def load(self, path: Path) -> ModuleType:
        self.loaded.append(path)
        return super().load(path)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep the cache and CMDLAUNCH_* variables away from the real user setup."""
    cache_dir = tmp_path / "cache"
    monkeypatch.setattr(metadata_cache, "DEFAULT_CACHE_DIR", cache_dir)
    for name in (
        "CMDLAUNCH_CMDS_DIR",
        "CMDLAUNCH_CACHE_DIR",
        "CMDLAUNCH_NO_CACHE",
        "CMDLAUNCH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return cache_dir


@pytest.fixture
def cache_dir(_isolate_environment: Path) -> Path:
    return _isolate_environment


@pytest.fixture
def tree(tmp_path: Path) -> CommandTree:
    return CommandTree(tmp_path / "project")
