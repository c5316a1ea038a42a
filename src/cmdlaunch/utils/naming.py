"""Flag-name casing helpers shared by the parser and the chain splitter."""

from __future__ import annotations

import re

_KEBAB_SEGMENT = re.compile(r"-([a-z0-9])")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camel_case(name: str) -> str:
    """``dry-run`` → ``dryRun``.  Names without dashes are returned as-is."""
    return _KEBAB_SEGMENT.sub(lambda match: match.group(1).upper(), name)


def kebab_case(name: str) -> str:
    """``dryRun`` → ``dry-run``.  Names without capitals are returned as-is."""
    return _CAMEL_BOUNDARY.sub(lambda match: "-" + match.group(1).lower(), name)


def strip_dashes(token: str) -> str:
    """Return *token* without its leading ``-`` / ``--`` prefix."""
    return token[2:] if token.startswith("--") else token[1:]


def is_flag(token: str) -> bool:
    """True for ``-x`` / ``--xyz`` tokens.  A lone ``-`` is a value."""
    return token.startswith("-") and token != "-"
