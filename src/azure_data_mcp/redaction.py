"""Removal of embedding vector fields from search payloads."""

import copy
from collections.abc import Iterable, Mapping
from typing import Any

# Numeric arrays strictly between these lengths are treated as vectors
MIN_VECTOR_LENGTH = 50
MAX_VECTOR_LENGTH = 10000

VECTOR_NAME_PARTS = ("vector", "embedding")
VECTOR_NAME_SUFFIXES = ("Vector", "_vector", "Embedding", "_embedding")


def _is_number(item: Any) -> bool:
    return isinstance(item, (int, float)) and not isinstance(item, bool)


def is_vector_field(key: str, value: Any) -> bool:
    """Decide whether a field holds an embedding vector.

    A field matches by name (contains "vector" or "embedding" in any case,
    or ends with one of VECTOR_NAME_SUFFIXES) or by shape (a list of numbers
    longer than MIN_VECTOR_LENGTH and shorter than MAX_VECTOR_LENGTH).

    Args:
        key: Field name.
        value: Field value.

    Returns:
        True if the field should be removed.
    """
    key_lower = key.lower()
    if any(part in key_lower for part in VECTOR_NAME_PARTS):
        return True
    if key.endswith(VECTOR_NAME_SUFFIXES):
        return True

    return (
        isinstance(value, (list, tuple))
        and MIN_VECTOR_LENGTH < len(value) < MAX_VECTOR_LENGTH
        and all(_is_number(item) for item in value)
    )


def redact(value: Any) -> Any:
    """Return a copy of value with vector fields removed at every mapping level.

    Lists are kept as opaque leaves: mappings inside lists are not visited.
    Non-mapping input is returned unchanged.

    Args:
        value: Search result, document or any JSON-like value.

    Returns:
        Redacted copy. The input is not modified.
    """
    if not isinstance(value, Mapping):
        return value

    result: dict[str, Any] = {}
    for key, item in value.items():
        if is_vector_field(str(key), item):
            continue
        if isinstance(item, Mapping):
            result[key] = redact(item)
        else:
            result[key] = copy.deepcopy(item)
    return result


def redact_batch(values: Iterable[Any]) -> list[Any]:
    """Redact each top-level result independently."""
    return [redact(v) for v in values]
