"""Flag parser: token stream → typed, validated, defaulted record.

Grammar
-------
* ``--name value`` / ``-n value`` for string and number flags.
* ``--name`` / ``-n`` for boolean flags (presence means ``True``; there is
  no ``--name false`` and no ``--no-name``).
* Flag names resolve through the schema's aliases first, then through
  kebab-case / camelCase normalisation (``--dry-run`` finds ``dryRun``).
* Bare tokens fill ``positional`` keys in declaration order and are
  otherwise ignored.

The parser is pure: it never touches the filesystem or the registry.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Any

from cmdlaunch.core.models import ArgDefinition, ArgsSchema, ArgType
from cmdlaunch.core.validator import validate_arg_value, validate_required_args
from cmdlaunch.exceptions import ArgumentValidationError
from cmdlaunch.utils.naming import is_flag, strip_dashes


_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
"""Plain ASCII decimal notation; no digit separators, no non-ASCII digits."""


def coerce_number(flag_name: str, raw: str) -> int | float:
    """Parse *raw* as ``int`` when possible, else as a finite ``float``."""
    if _DECIMAL.fullmatch(raw) is None:
        raise ArgumentValidationError(flag_name, f'Expected number, got "{raw}"')
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        value = float(raw)
    except ValueError:
        raise ArgumentValidationError(flag_name, f'Expected number, got "{raw}"') from None
    if not math.isfinite(value):
        raise ArgumentValidationError(flag_name, f'Expected number, got "{raw}"')
    return value


def _coerce(flag_name: str, raw: str, definition: ArgDefinition) -> Any:
    if definition.type is ArgType.NUMBER:
        return coerce_number(flag_name, raw)
    return raw


def parse_args(tokens: Sequence[str], schema: ArgsSchema) -> dict[str, Any]:
    """Parse *tokens* (command names already removed) against *schema*.

    Returns a new dict holding every explicitly given value merged over
    the schema's defaults.

    Raises
    ------
    ArgumentValidationError
        For an unknown flag, a missing or malformed value, a value that
        fails ``allowed`` / ``validate``, or a missing required key.
    """
    index = schema.index
    parsed: dict[str, Any] = dict(index.defaults)
    explicit: set[str] = set()
    pending_positionals = list(index.positional_keys)

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if not is_flag(token):
            while pending_positionals and pending_positionals[0] in explicit:
                pending_positionals.pop(0)
            if pending_positionals:
                key = pending_positionals.pop(0)
                definition = schema[key]
                value = _coerce(key, token, definition)
                validate_arg_value(key, value, definition)
                parsed[key] = value
                explicit.add(key)
            continue

        flag_name = strip_dashes(token)
        key = index.resolve(flag_name)
        if key is None:
            raise ArgumentValidationError(
                flag_name,
                f"Unknown argument. Available: {', '.join(index.available_keys) or '(none)'}",
            )

        definition = schema[key]
        if definition.type is ArgType.BOOLEAN:
            parsed[key] = True
            explicit.add(key)
            continue

        if i >= len(tokens) or is_flag(tokens[i]):
            raise ArgumentValidationError(
                flag_name,
                f'Expected value for argument "{flag_name}"',
            )
        raw = tokens[i]
        i += 1

        value = _coerce(flag_name, raw, definition)
        validate_arg_value(key, value, definition)
        parsed[key] = value
        explicit.add(key)

    validate_required_args(
        parsed,
        [key for key in index.available_keys if key in index.required_keys],
    )
    return parsed
