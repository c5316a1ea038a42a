"""Value checks applied after coercion: type, ``allowed`` and ``validate``."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from cmdlaunch.core.models import ArgDefinition
from cmdlaunch.exceptions import ArgumentValidationError


def _render(value: object) -> str:
    return f'"{value}"' if isinstance(value, str) else str(value)


def validate_arg_value(arg_name: str, value: Any, definition: ArgDefinition) -> None:
    """Raise :class:`ArgumentValidationError` unless *value* satisfies *definition*."""
    if not definition.accepts(value):
        raise ArgumentValidationError(
            arg_name,
            f"Expected {definition.type.value}, got {type(value).__name__}",
        )

    if definition.allowed is not None and value not in definition.allowed:
        allowed = ", ".join(_render(option) for option in definition.allowed)
        raise ArgumentValidationError(
            arg_name,
            f"Value must be one of: {allowed}. Got: {_render(value)}",
        )

    if definition.validate is not None:
        result = definition.validate(value)
        if result is not True:
            raise ArgumentValidationError(
                arg_name,
                result if isinstance(result, str) and result else "Validation failed",
            )


def validate_required_args(parsed: Mapping[str, Any], required_keys: Iterable[str]) -> None:
    """Raise for the first required key absent from *parsed*."""
    for key in required_keys:
        if key not in parsed:
            raise ArgumentValidationError(key, f'Required argument "{key}" is missing')
