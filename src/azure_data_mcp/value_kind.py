"""Value kind classification for table record values."""

from datetime import date
from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    """Tag describing the runtime kind of a record value."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    BINARY = "binary"
    NULL = "null"
    UNKNOWN = "unknown"


def value_kind(value: Any) -> ValueKind:
    """Classify a value into a ValueKind.

    bool is checked before int since bool is a subclass of int. Floats with
    an integral value (e.g. 3.0) are reported as integers.

    Args:
        value: Any record value.

    Returns:
        The matching ValueKind, or ValueKind.UNKNOWN.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.INTEGER if value.is_integer() else ValueKind.NUMBER
    # datetime is a subclass of date
    if isinstance(value, date):
        return ValueKind.DATE
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BINARY
    return ValueKind.UNKNOWN
