"""Dot-path evaluation over decoded JSON documents.

``"foo"`` evaluates to ``doc["foo"]``, ``"foo.bar"`` to ``doc["foo"]["bar"]``.
The resolved value is rendered as a string.
"""

import json
from typing import Any


class ExpressionError(Exception):
    """Raised when a path cannot be resolved against a document."""


class KeyNotFoundError(ExpressionError):
    pass


class NotAMappingError(ExpressionError):
    pass


def stringify(value: Any) -> str:
    """Render a JSON value the way it should appear in an output line."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def evaluate_expression(model: Any, expression: str) -> str:
    """Resolve the dot-separated *expression* against *model*.

    Raises KeyNotFoundError when a key is missing or null, and
    NotAMappingError when a path segment is applied to a non-mapping.
    """
    if expression == "":
        return stringify(model)

    key, _, rest = expression.partition(".")
    if not isinstance(model, dict):
        raise NotAMappingError(
            f"Model on which {expression!r} is to be evaluated is not a mapping"
        )
    value = model.get(key)
    if value is None:
        raise KeyNotFoundError(
            f"Failed to evaluate expression {expression!r}: key {key!r} not found"
        )
    return evaluate_expression(value, rest)
