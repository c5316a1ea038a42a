"""Tests for the registry and name/chain resolution (core/registry.py)."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from cmdlaunch.core.command import define_command
from cmdlaunch.core.models import CommandMeta, CommandNode, FileStat
from cmdlaunch.core.registry import Registry, RegistryContext
from cmdlaunch.exceptions import CommandNotFoundError
from cmdlaunch.utils.concurrency import Lazy


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _node(name: str, *, parent: str | None = None, depth: int = 1) -> CommandNode:
    meta = CommandMeta(name=name)
    definition = define_command(handler=lambda ctx: None, meta=meta)
    return CommandNode(
        name=name,
        path=Path("/cmds") / name,
        file_path=Path("/cmds") / name / "cmd.py",
        depth=depth,
        parent=parent,
        load_definition=Lazy.resolved(definition),
        load_metadata=Lazy.resolved(meta),
    )


def _registry() -> Registry:
    """build, deploy → staging → canary."""
    registry = Registry()
    for node in (
        _node("build"),
        _node("deploy"),
        _node("staging", parent="deploy", depth=2),
        _node("canary", parent="staging", depth=3),
    ):
        registry.add_node(node, FileStat(mtime_ns=1, size=1))
    registry.link_hierarchy()
    return registry


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

class TestStructure:
    def test_roots_and_children(self) -> None:
        registry = _registry()
        assert registry.root_names == {"build", "deploy"}
        assert list(registry.hierarchy["deploy"].children) == ["staging"]
        assert list(registry.hierarchy["staging"].children) == ["canary"]

    def test_display_path(self) -> None:
        assert _registry().display_path("canary") == ("deploy", "staging", "canary")

    def test_loader_views(self) -> None:
        registry = _registry()
        assert set(registry.command_loaders) == set(registry.hierarchy)
        assert set(registry.metadata_loaders) == set(registry.hierarchy)

    def test_snapshot(self) -> None:
        snapshot = _registry().snapshot()
        assert snapshot["roots"] == ["build", "deploy"]
        assert snapshot["commands"]["staging"]["parent"] == "deploy"
        assert snapshot["commands"]["deploy"]["children"] == ["staging"]

    def test_missing_parent_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = Registry()
        registry.add_node(_node("orphan", parent="ghost", depth=2), FileStat(1, 1))
        with caplog.at_level(logging.WARNING):
            registry.link_hierarchy()
        assert "ghost" in caplog.text


# ---------------------------------------------------------------------------
# Metadata and aliases
# ---------------------------------------------------------------------------

class TestMetadataAndAliases:
    def test_record_registers_aliases(self) -> None:
        registry = _registry()
        registry.record_metadata("build", CommandMeta(name="build", aliases=("b",)))
        assert registry.resolve_command("b") == "build"
        assert registry.cache_dirty is True

    def test_cached_metadata_does_not_dirty(self) -> None:
        registry = _registry()
        registry.record_metadata("build", CommandMeta(name="build"), from_cache=True)
        assert registry.cache_dirty is False

    def test_same_metadata_again_does_not_dirty(self) -> None:
        registry = _registry()
        meta = CommandMeta(name="build")
        registry.record_metadata("build", meta, from_cache=True)
        registry.record_metadata("build", meta)
        assert registry.cache_dirty is False

    def test_aliases_complete_once_all_known(self) -> None:
        registry = _registry()
        for name in ("build", "deploy", "staging"):
            registry.record_metadata(name, CommandMeta(name=name))
        assert registry.aliases_complete is False
        registry.record_metadata("canary", CommandMeta(name="canary"))
        assert registry.aliases_complete is True

    def test_alias_shadowing_command_ignored(self) -> None:
        registry = _registry()
        registry.add_alias("deploy", "build")
        assert registry.resolve_command("deploy") == "deploy"

    def test_conflicting_alias_keeps_first(self) -> None:
        registry = _registry()
        registry.add_alias("x", "build")
        registry.add_alias("x", "deploy")
        assert registry.resolve_command("x") == "build"

    def test_unregistered_name_resolves_to_itself(self) -> None:
        assert _registry().resolve_command("nope") == "nope"


# ---------------------------------------------------------------------------
# Chain resolution
# ---------------------------------------------------------------------------

class TestResolveCommandChain:
    def test_single(self) -> None:
        resolution = _registry().resolve_command_chain(["build"])
        assert resolution.names == ("build",)
        assert resolution.parent is None

    def test_two_levels(self) -> None:
        resolution = _registry().resolve_command_chain(["deploy", "staging"])
        assert resolution.target.name == "staging"
        assert resolution.parent is not None
        assert resolution.parent.name == "deploy"

    def test_three_levels_parent_is_immediate(self) -> None:
        resolution = _registry().resolve_command_chain(["deploy", "staging", "canary"])
        assert resolution.parent is not None
        assert resolution.parent.name == "staging"

    def test_via_alias(self) -> None:
        registry = _registry()
        registry.add_alias("d", "deploy")
        assert registry.resolve_command_chain(["d", "staging"]).names == ("deploy", "staging")

    def test_unknown_first_lists_everything(self) -> None:
        with pytest.raises(CommandNotFoundError) as exc_info:
            _registry().resolve_command_chain(["deplyo"])
        assert exc_info.value.name == "deplyo"
        assert exc_info.value.available == ("build", "canary", "deploy", "staging")

    def test_unknown_child_lists_only_children(self) -> None:
        with pytest.raises(CommandNotFoundError) as exc_info:
            _registry().resolve_command_chain(["deploy", "prod"])
        assert exc_info.value.name == "prod"
        assert exc_info.value.parent == "deploy"
        assert exc_info.value.available == ("staging",)

    def test_existing_command_under_wrong_parent(self) -> None:
        with pytest.raises(CommandNotFoundError) as exc_info:
            _registry().resolve_command_chain(["build", "staging"])
        assert exc_info.value.parent == "build"
        assert exc_info.value.available == ()

    def test_dangling_alias(self) -> None:
        registry = _registry()
        registry.alias_map["gone"] = "removed"
        with pytest.raises(CommandNotFoundError) as exc_info:
            registry.resolve_command_chain(["gone"])
        assert exc_info.value.name == "gone"

    def test_empty_chain(self) -> None:
        with pytest.raises(ValueError):
            _registry().resolve_command_chain([])


class TestRegistryContext:
    def test_get_set_clear(self) -> None:
        context = RegistryContext()
        assert context.get() is None
        registry = Registry()
        context.set(registry)
        assert context.get() is registry
        context.clear()
        assert context.get() is None

    def test_contexts_are_independent(self) -> None:
        first, second = RegistryContext(), RegistryContext()
        first.set(Registry())
        assert second.get() is None
