"""Split a chain invocation's tokens between the parent and the child.

For ``prog deploy staging --dry-run --region us-east`` the tokens after
the command names are ``["--dry-run", "--region", "us-east"]``.  A flag
belongs to the parent when its dash-stripped name matches a parent key
in any accepted spelling (long, kebab-case, camelCase, alias, or the
``no-`` negated form).  A non-boolean parent flag also takes the next
token when that token is not itself a flag.  Everything else goes to
the child.

A flag declared by both schemas is routed by :class:`SharedFlagPolicy`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from cmdlaunch.core.models import ArgsSchema, ArgType
from cmdlaunch.utils.naming import is_flag, strip_dashes

_NEGATION_PREFIX = "no-"


class SharedFlagPolicy(str, Enum):
    """Who receives a flag that both parent and child declare."""

    PARENT = "parent"
    """The parent takes it and the child never sees it."""

    CHILD = "child"
    """The child takes it and the parent never sees it."""

    BOTH = "both"
    """Both receive a copy (with its value, if any)."""


@dataclass(frozen=True, slots=True)
class SplitTokens:
    """Result of :func:`split_chain_tokens`."""

    parent: tuple[str, ...]
    child: tuple[str, ...]


def owning_key(flag_name: str, schema: ArgsSchema) -> str | None:
    """Return the *schema* key matched by *flag_name*, negated forms included."""
    index = schema.index
    key = index.resolve(flag_name)
    if key is None and flag_name.startswith(_NEGATION_PREFIX):
        key = index.resolve(flag_name[len(_NEGATION_PREFIX):])
    return key


def split_chain_tokens(
    tokens: Sequence[str],
    parent_schema: ArgsSchema,
    child_schema: ArgsSchema,
    *,
    policy: SharedFlagPolicy = SharedFlagPolicy.PARENT,
) -> SplitTokens:
    """Partition *tokens* into parent-owned and child-owned buckets.

    Relative order inside each bucket is preserved.
    """
    parent: list[str] = []
    child: list[str] = []

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if not is_flag(token):
            child.append(token)
            continue

        flag_name = strip_dashes(token)
        parent_key = owning_key(flag_name, parent_schema)
        if parent_key is None:
            child.append(token)
            continue

        shared = owning_key(flag_name, child_schema) is not None
        if shared and policy is SharedFlagPolicy.CHILD:
            child.append(token)
            continue

        group = [token]
        takes_value = parent_schema[parent_key].type is not ArgType.BOOLEAN
        if takes_value and i < len(tokens) and not is_flag(tokens[i]):
            group.append(tokens[i])
            i += 1

        parent.extend(group)
        if shared and policy is SharedFlagPolicy.BOTH:
            child.extend(group)

    return SplitTokens(parent=tuple(parent), child=tuple(child))
