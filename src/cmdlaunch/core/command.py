"""Helpers for declaring commands and for reading them back off a module.

A command lives in ``<cmds>/<name>/cmd.py`` and exposes either::

    command = define_command(
        handler=run,
        args=define_args(verbose={"type": "boolean", "aliases": ["v"]}),
        meta=define_meta(name="build", description="Build the project"),
    )

or the same three pieces as module-level ``handler``, ``args`` and
``meta`` (``cfg`` is accepted as a synonym for ``meta``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import ModuleType
from typing import Any

from cmdlaunch.core.models import (
    ArgDefinition,
    ArgsSchema,
    CommandContext,
    CommandDefinition,
    CommandMeta,
)

_EXPORT_NAME = "command"
_META_KEYS: tuple[str, ...] = ("meta", "cfg")


# ---------------------------------------------------------------------------
# Declaration helpers (used inside cmd.py files)
# ---------------------------------------------------------------------------

def define_args(
    definitions: Mapping[str, ArgDefinition | Mapping[str, Any]] | None = None,
    /,
    **named: ArgDefinition | Mapping[str, Any],
) -> ArgsSchema:
    """Build an :class:`ArgsSchema` from a mapping and/or keyword arguments."""
    merged: dict[str, ArgDefinition | Mapping[str, Any]] = dict(definitions or {})
    merged.update(named)
    return ArgsSchema(merged)


def define_meta(name: str, description: str = "", **extra: Any) -> CommandMeta:
    """Build :class:`CommandMeta`; *extra* takes aliases, version, examples, category."""
    return CommandMeta.from_dict({"name": name, "description": description, **extra})


def define_command(
    *,
    handler: Callable[[CommandContext], Any],
    args: ArgsSchema | Mapping[str, Any] | None = None,
    meta: CommandMeta | Mapping[str, Any] | None = None,
    cfg: CommandMeta | Mapping[str, Any] | None = None,
) -> CommandDefinition:
    """Validate and bundle a command's handler, schema and metadata."""
    return _build_definition(
        {"handler": handler, "args": args if args is not None else {}, "meta": meta, "cfg": cfg}
    )


# ---------------------------------------------------------------------------
# Reading a loaded module
# ---------------------------------------------------------------------------

def _exported(module: ModuleType) -> Any:
    """Return the module's command export, or a dict of its top-level pieces."""
    export = getattr(module, _EXPORT_NAME, None)
    if export is not None:
        return export
    return {
        key: getattr(module, key)
        for key in ("handler", "args", *_META_KEYS)
        if hasattr(module, key)
    }


def _raw_meta(source: Mapping[str, Any]) -> Any:
    for key in _META_KEYS:
        value = source.get(key)
        if value is not None:
            return value
    raise TypeError("command does not declare 'meta' (or 'cfg')")


def _build_definition(source: Mapping[str, Any]) -> CommandDefinition:
    handler = source.get("handler")
    if not callable(handler):
        raise TypeError("command 'handler' must be callable")
    if "args" not in source or source["args"] is None:
        raise TypeError("command does not declare 'args'")
    return CommandDefinition(
        handler=handler,
        args=ArgsSchema.coerce(source["args"]),
        meta=CommandMeta.coerce(_raw_meta(source)),
    )


def definition_from_module(module: ModuleType) -> CommandDefinition:
    """Extract the full definition.  Raises ``TypeError`` on a malformed shape."""
    export = _exported(module)
    if isinstance(export, CommandDefinition):
        return export
    if isinstance(export, Mapping):
        return _build_definition(export)
    raise TypeError(
        f"'{_EXPORT_NAME}' must be a CommandDefinition or a mapping, "
        f"got {type(export).__name__}"
    )


def metadata_from_module(module: ModuleType) -> CommandMeta:
    """Extract only the display metadata; the handler and args are not checked."""
    export = _exported(module)
    if isinstance(export, CommandDefinition):
        return export.meta
    if isinstance(export, Mapping):
        return CommandMeta.coerce(_raw_meta(export))
    raise TypeError(
        f"'{_EXPORT_NAME}' must be a CommandDefinition or a mapping, "
        f"got {type(export).__name__}"
    )
