"""Uniform response envelope returned by every tool.

Every tool returns {"success": bool, "data": ...} on success or
{"success": False, "error": "..."} on failure, plus optional context keys
such as table_name or error_type.
"""

import base64
from collections.abc import Mapping
from datetime import date
from typing import Any


def success(data: Any, **context: Any) -> dict[str, Any]:
    """Build a successful envelope.

    Args:
        data: Payload.
        **context: Extra top-level keys such as table_name or count.
    """
    result: dict[str, Any] = {"success": True, "data": data}
    result.update(context)
    return result


def failure(error: str | BaseException, **context: Any) -> dict[str, Any]:
    """Build a failed envelope from a message or an exception.

    Context keys whose value is None are omitted.
    """
    message = str(error) or type(error).__name__
    result: dict[str, Any] = {"success": False, "error": message}
    result.update({k: v for k, v in context.items() if v is not None})
    return result


def to_jsonable(value: Any) -> Any:
    """Convert table values to JSON-friendly equivalents.

    Dates become ISO 8601 strings and binary values become base64 strings.
    Mappings and lists are converted recursively.
    """
    if isinstance(value, Mapping):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value
