"""Core layer: command models, flag parsing and the command registry.

Rules
-----
* No ``print()`` calls.
* No filesystem I/O and no module imports by path.
* No imports from ``cli`` or ``infra``.
"""

from cmdlaunch.core.command import define_args, define_command, define_meta
from cmdlaunch.core.models import (
    ArgDefinition,
    ArgsSchema,
    ArgType,
    CommandContext,
    CommandDefinition,
    CommandMeta,
    CommandNode,
)
from cmdlaunch.core.parser import parse_args
from cmdlaunch.core.registry import ChainResolution, Registry, RegistryContext
from cmdlaunch.core.splitter import SharedFlagPolicy, split_chain_tokens

__all__: list[str] = [
    "ArgDefinition",
    "ArgType",
    "ArgsSchema",
    "ChainResolution",
    "CommandContext",
    "CommandDefinition",
    "CommandMeta",
    "CommandNode",
    "Registry",
    "RegistryContext",
    "SharedFlagPolicy",
    "define_args",
    "define_command",
    "define_meta",
    "parse_args",
    "split_chain_tokens",
]
