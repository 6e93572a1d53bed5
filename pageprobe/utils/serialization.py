"""Shared serialization helpers.

Provides ``snake_to_camel`` for Pydantic alias generation and
``strip_undefined`` which canonicalises report data before it
leaves the process.
"""

from __future__ import annotations

import math
from collections.abc import Mapping


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"my_field_name"``.

    Returns:
        The camelCase equivalent, e.g. ``"myFieldName"``.
    """
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


def strip_undefined(value: object) -> object:
    """Return a JSON-safe deep copy of *value* without undefined leaves.

    ``None`` stands in for an undefined value: mapping entries whose
    value is ``None`` are dropped, and so are non-finite floats, which
    have no JSON representation.  Inside sequences such items become
    ``None`` so positions are preserved.  Tuples and sets are emitted
    as lists, mapping keys as strings.

    Args:
        value: Any nesting of mappings, sequences and scalars.

    Returns:
        A structure made only of ``dict``, ``list``, ``str``, ``int``,
        ``float``, ``bool`` and ``None`` (the last only in lists).
    """
    if isinstance(value, Mapping):
        result: dict[str, object] = {}
        for key, item in value.items():
            if _is_undefined(item):
                continue
            result[str(key)] = strip_undefined(item)
        return result
    if isinstance(value, (list, tuple, set, frozenset)):
        return [None if _is_undefined(item) else strip_undefined(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _is_undefined(value: object) -> bool:
    """Return ``True`` for values that cannot survive a JSON round-trip."""
    if value is None:
        return True
    return isinstance(value, float) and not math.isfinite(value)
