"""Domain models for cmdlaunch.

Value objects are **frozen** dataclasses.  The two mutable pieces are
:class:`ArgsSchema` (which caches its own lookup index) and
:class:`CommandNode` (whose children map is filled while the hierarchy
is linked).  Nothing in this module performs I/O.

Mapping forms (``{"type": "string", "aliases": ["n"]}``) are accepted
wherever a command module declares a model, so command authors can
write plain dicts.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Any

from cmdlaunch.utils.concurrency import Lazy
from cmdlaunch.utils.naming import camel_case, kebab_case


# ---------------------------------------------------------------------------
# Argument declarations
# ---------------------------------------------------------------------------

class ArgType(str, Enum):
    """Value type of a declared flag."""

    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"


def _as_tuple(value: Any) -> tuple[Any, ...]:
    """A lone string counts as one item, not a sequence of characters."""
    if isinstance(value, str):
        return (value,)
    return tuple(value or ())


_ARG_OPTIONS: frozenset[str] = frozenset(
    {"type", "required", "default", "aliases", "allowed", "validate", "description", "positional"}
)


@dataclass(frozen=True, slots=True)
class ArgDefinition:
    """One flag declared by a command module."""

    type: ArgType
    """Value type used for coercion."""

    required: bool = False
    """Parsing fails when the key is absent and has no default."""

    default: Any = None
    """Value used when the flag is omitted.  ``None`` means no default."""

    aliases: tuple[str, ...] = ()
    """Alternative names, e.g. ``("v",)`` for ``-v``."""

    allowed: tuple[Any, ...] | None = None
    """Closed set of accepted values, or ``None`` for any value."""

    validate: Callable[[Any], bool | str] | None = field(default=None, compare=False)
    """Custom check.  ``True`` passes, a string is the failure message."""

    description: str = ""
    """Help text shown in per-command help."""

    positional: bool = False
    """Also filled from bare (non-flag) tokens, in declaration order."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ArgType(self.type))
        object.__setattr__(self, "aliases", _as_tuple(self.aliases))
        if self.allowed is not None:
            object.__setattr__(self, "allowed", tuple(self.allowed))
        if self.validate is not None and not callable(self.validate):
            raise TypeError("validate must be callable")
        if self.default is not None and not self.accepts(self.default):
            raise TypeError(
                f"default {self.default!r} does not match type {self.type.value!r}"
            )
        if self.positional and self.type is ArgType.BOOLEAN:
            raise ValueError("boolean arguments cannot be positional")

    def accepts(self, value: object) -> bool:
        """Return whether *value* has the Python type this flag produces."""
        if self.type is ArgType.BOOLEAN:
            return isinstance(value, bool)
        if self.type is ArgType.NUMBER:
            return (
                isinstance(value, (int, float))
                and not isinstance(value, bool)
                and math.isfinite(value)
            )
        return isinstance(value, str)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ArgDefinition:
        unknown = set(raw) - _ARG_OPTIONS
        if unknown:
            raise TypeError(f"unknown argument option(s): {', '.join(sorted(unknown))}")
        if "type" not in raw:
            raise TypeError("argument declaration is missing 'type'")
        return cls(**raw)


@dataclass(frozen=True, slots=True)
class SchemaIndex:
    """Lookup tables precomputed once per :class:`ArgsSchema`."""

    alias_map: dict[str, str]
    """Alias → canonical key."""

    casing_map: dict[str, str]
    """Key itself plus its kebab-case and camelCase spellings → key."""

    defaults: dict[str, Any]
    required_keys: frozenset[str]
    available_keys: tuple[str, ...]
    positional_keys: tuple[str, ...]

    @classmethod
    def build(cls, schema: Mapping[str, ArgDefinition]) -> SchemaIndex:
        alias_map: dict[str, str] = {}
        casing_map: dict[str, str] = {}
        defaults: dict[str, Any] = {}
        required: set[str] = set()
        positional: list[str] = []

        for key, definition in schema.items():
            for spelling in (key, kebab_case(key), camel_case(key)):
                casing_map.setdefault(spelling, key)
            for alias in definition.aliases:
                alias_map[alias] = key
                for spelling in (kebab_case(alias), camel_case(alias)):
                    if spelling != alias:
                        alias_map.setdefault(spelling, key)
            if definition.default is not None:
                defaults[key] = definition.default
            if definition.required:
                required.add(key)
            if definition.positional:
                positional.append(key)

        return cls(
            alias_map=alias_map,
            casing_map=casing_map,
            defaults=defaults,
            required_keys=frozenset(required),
            available_keys=tuple(schema),
            positional_keys=tuple(positional),
        )

    def resolve(self, flag_name: str) -> str | None:
        """Map a dash-stripped flag name to its schema key, or ``None``."""
        key = self.alias_map.get(flag_name)
        if key is not None:
            return key
        key = self.casing_map.get(flag_name)
        if key is not None:
            return key
        return self.casing_map.get(camel_case(flag_name))


class ArgsSchema(Mapping[str, ArgDefinition]):
    """Immutable mapping of flag name → :class:`ArgDefinition`.

    The :attr:`index` is computed on first use and cached on the schema
    object itself, so a command's schema is only analysed once per
    process.
    """

    def __init__(
        self,
        definitions: Mapping[str, ArgDefinition | Mapping[str, Any]] | None = None,
    ) -> None:
        coerced: dict[str, ArgDefinition] = {}
        for name, definition in (definitions or {}).items():
            if not isinstance(name, str) or not name or name.startswith("-"):
                raise ValueError(f"invalid argument name: {name!r}")
            if isinstance(definition, ArgDefinition):
                coerced[name] = definition
            elif isinstance(definition, Mapping):
                coerced[name] = ArgDefinition.from_mapping(definition)
            else:
                raise TypeError(
                    f"argument {name!r} must be an ArgDefinition or a mapping, "
                    f"got {type(definition).__name__}"
                )
        self._definitions: dict[str, ArgDefinition] = coerced

    @classmethod
    def coerce(cls, value: object) -> ArgsSchema:
        if isinstance(value, ArgsSchema):
            return value
        if isinstance(value, Mapping):
            return cls(value)
        raise TypeError(f"args must be a mapping, got {type(value).__name__}")

    def __getitem__(self, key: str) -> ArgDefinition:
        return self._definitions[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"ArgsSchema({self._definitions!r})"

    @cached_property
    def index(self) -> SchemaIndex:
        return SchemaIndex.build(self)


# ---------------------------------------------------------------------------
# Command metadata and definition
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CommandMeta:
    """Lightweight display metadata, cheap enough to persist."""

    name: str
    description: str = ""
    aliases: tuple[str, ...] = ()
    version: str | None = None
    examples: tuple[str, ...] = ()
    category: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise TypeError("command metadata requires a non-empty string 'name'")
        object.__setattr__(self, "aliases", _as_tuple(self.aliases))
        object.__setattr__(self, "examples", _as_tuple(self.examples))

    @classmethod
    def coerce(cls, value: object) -> CommandMeta:
        if isinstance(value, CommandMeta):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise TypeError(f"metadata must be a mapping, got {type(value).__name__}")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CommandMeta:
        return cls(
            name=raw.get("name"),  # type: ignore[arg-type]
            description=str(raw.get("description") or ""),
            aliases=raw.get("aliases") or (),
            version=raw.get("version"),
            examples=raw.get("examples") or (),
            category=raw.get("category"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "aliases": list(self.aliases),
            "version": self.version,
            "examples": list(self.examples),
            "category": self.category,
        }


@dataclass(frozen=True, slots=True)
class CommandDefinition:
    """Everything needed to run one command."""

    handler: Callable[[CommandContext], Any]
    args: ArgsSchema
    meta: CommandMeta


@dataclass(frozen=True, slots=True)
class CommandContext:
    """The single argument passed to a command handler."""

    args: dict[str, Any]
    """Parsed, defaulted flags of the invoked command."""

    parent_args: dict[str, Any] = field(default_factory=dict)
    """Parent's parsed flags in a chain invocation (context only)."""

    chain: tuple[str, ...] = ()
    """Resolved command names from the root to the invoked command."""


# ---------------------------------------------------------------------------
# Persistence records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FileStat:
    """The cache-validity proxy: modification time and size."""

    mtime_ns: int
    size: int


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Persisted metadata for one command plus the stat it was read at."""

    metadata: CommandMeta
    file_path: str
    mtime: int
    size: int

    def matches(self, stat: FileStat) -> bool:
        return self.mtime == stat.mtime_ns and self.size == stat.size

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CacheEntry:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("metadata"), Mapping):
            raise TypeError("cache entry and its metadata must be mappings")
        return cls(
            metadata=CommandMeta.from_dict(raw["metadata"]),
            file_path=str(raw["filePath"]),
            mtime=int(raw["mtime"]),
            size=int(raw["size"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "filePath": self.file_path,
            "mtime": self.mtime,
            "size": self.size,
        }


@dataclass(frozen=True, slots=True)
class CacheData:
    """The whole persisted cache file."""

    version: str
    entries: dict[str, CacheEntry]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> CacheData:
        entries = raw.get("entries")
        if not isinstance(entries, Mapping):
            raise ValueError("cache file has no 'entries' mapping")
        return cls(
            version=str(raw.get("version", "")),
            entries={name: CacheEntry.from_dict(entry) for name, entry in entries.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "entries": {name: entry.to_dict() for name, entry in self.entries.items()},
        }


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class CommandNode:
    """One discovered command directory and its lazy loaders."""

    name: str
    path: Path
    """Command directory."""

    file_path: Path
    """Entry file (``cmd.py``) inside :attr:`path`."""

    depth: int
    parent: str | None
    load_definition: Lazy[CommandDefinition] = field(repr=False)
    load_metadata: Lazy[CommandMeta] = field(repr=False)
    children: dict[str, CommandNode] = field(default_factory=dict, repr=False)
