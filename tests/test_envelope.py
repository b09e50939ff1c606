"""Tests for envelope module."""

from datetime import datetime, timezone

from azure_data_mcp.envelope import failure, success, to_jsonable


class TestEnvelope:
    """Tests for success and failure builders."""

    def test_success(self) -> None:
        """Success carries data and context keys."""
        result = success([1, 2], count=2, table_name="orders")

        assert result == {
            "success": True,
            "data": [1, 2],
            "count": 2,
            "table_name": "orders",
        }

    def test_failure_from_exception(self) -> None:
        """Failure uses the exception message and drops None context."""
        result = failure(ValueError("boom"), table_name="orders", error_type=None)

        assert result == {"success": False, "error": "boom", "table_name": "orders"}

    def test_failure_without_message(self) -> None:
        """Exceptions without a message fall back to the type name."""
        assert failure(RuntimeError())["error"] == "RuntimeError"


class TestToJsonable:
    """Tests for to_jsonable function."""

    def test_converts_dates_and_binary(self) -> None:
        """Dates and bytes become strings, nested containers are walked."""
        value = {
            "when": datetime(2025, 11, 27, 9, 30, tzinfo=timezone.utc),
            "blob": b"\x00\x01",
            "items": [{"raw": bytearray(b"hi")}],
            "n": 1,
        }

        assert to_jsonable(value) == {
            "when": "2025-11-27T09:30:00+00:00",
            "blob": "AAE=",
            "items": [{"raw": "aGk="}],
            "n": 1,
        }
