"""
Helper functions for index key patterns.

This module contains shared utility functions used by the descriptor model,
the comparator and the connection layer.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from ..constants import TEXT_INDEX_KIND

logger = logging.getLogger(__name__)


def normalize_keys(
    keys: Mapping[str, Any] | list[tuple[str, Any]] | tuple[tuple[str, Any], ...],
) -> tuple[tuple[str, Any], ...]:
    """
    Normalize index keys to an ordered tuple of pairs.

    Field order is preserved: a compound index on (a, b) differs from (b, a).

    Args:
        keys: Index keys as a mapping or a sequence of (field, direction) pairs

    Returns:
        Tuple of (field_name, direction) tuples

    Raises:
        TypeError: If keys is neither a mapping nor a sequence of pairs
    """
    if isinstance(keys, Mapping):
        return tuple((str(k), v) for k, v in keys.items())
    if isinstance(keys, (list, tuple)):
        pairs = []
        for item in keys:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise TypeError(f"Index key entries must be (field, direction) pairs, got {item!r}")
            pairs.append((str(item[0]), item[1]))
        return tuple(pairs)
    raise TypeError(f"Index keys must be a mapping or a list of pairs, got {type(keys).__name__}")


def keys_to_dict(keys: tuple[tuple[str, Any], ...]) -> dict[str, Any]:
    """
    Convert normalized index keys back to an (ordered) dictionary.

    Args:
        keys: Index keys as a tuple of pairs

    Returns:
        Dictionary representation of keys, in key order
    """
    return {k: v for k, v in keys}


def has_text_field(keys: tuple[tuple[str, Any], ...]) -> bool:
    """Return True if any field of the key pattern is a text field."""
    return any(isinstance(v, str) and v.lower() == TEXT_INDEX_KIND for _, v in keys)


def is_valid_direction(direction: Any) -> bool:
    """
    Check that a key pattern value is a direction or a special index kind.

    Accepts any non-zero number (the server reads its sign as the sort
    direction, so 2 or -0.5 are legal) and any non-empty string kind ("text",
    "2dsphere", "hashed", ...).
    """
    if isinstance(direction, bool):
        return False
    if isinstance(direction, (int, float)):
        return direction != 0 and not math.isnan(direction)
    return isinstance(direction, str) and bool(direction)


def canonical_value(value: Any) -> Any:
    """
    Hashable canonical form of a key direction or option value.

    Numbers compare by value (1 equals 1.0) but never equal booleans.
    Documents compare by their set of fields, regardless of field order.
    Arrays keep their order.
    """
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", value)
    if isinstance(value, Mapping):
        return ("document", frozenset((str(k), canonical_value(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return ("array", tuple(canonical_value(v) for v in value))
    try:
        hash(value)
    except TypeError:
        # e.g. bson.Regex defines __eq__ without __hash__
        return ("repr", repr(value))
    return ("value", value)


def generate_index_name(keys: tuple[tuple[str, Any], ...]) -> str:
    """
    Generate the default index name for a key pattern.

    Format: field1_1_field2_-1 (1 for ascending, -1 for descending, the kind
    for special indexes such as "text" or "2dsphere").
    """
    name_parts = []
    for key, direction in keys:
        if isinstance(direction, float) and direction.is_integer():
            direction = int(direction)
        name_parts.append(f"{key}_{direction}")
    return "_".join(name_parts)
