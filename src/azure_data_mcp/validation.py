"""Advisory validation of records against an inferred table schema."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from azure_data_mcp.errors import SchemaViolationError
from azure_data_mcp.schema import EmptyTable, TableSchema
from azure_data_mcp.sources import Record
from azure_data_mcp.value_kind import value_kind


class ViolationPolicy(str, Enum):
    """What a write does when its record fails validation."""

    WARN = "warn"
    REJECT = "reject"


@dataclass
class ValidationReport:
    """Outcome of validating one record.

    Only errors fail validation. Missing required fields and new fields are
    reported as warnings.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    message: str = ""
    schema_info: dict[str, int] | None = None

    @property
    def passed(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "conforms_to_schema": self.passed,
            "message": self.message,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.schema_info is not None:
            result["schema_info"] = dict(self.schema_info)
        return result

    @classmethod
    def skipped(cls, reason: str) -> "ValidationReport":
        """Report for a record that could not be checked."""
        return cls(message=f"Validation skipped: {reason}")


def validate(schema: TableSchema | EmptyTable, candidate: Record) -> ValidationReport:
    """Check a candidate record against an inferred schema.

    Args:
        schema: Result of infer_schema.
        candidate: Record about to be written.

    Returns:
        ValidationReport listing type mismatches as errors and missing
        required fields or unseen fields as warnings.
    """
    if isinstance(schema, EmptyTable):
        return ValidationReport(message="Table is empty; validation skipped")

    errors: list[str] = []
    warnings: list[str] = []

    for name in schema.common_properties:
        if name not in candidate:
            presence = schema.fields[name].presence
            warnings.append(
                f"expected field missing: '{name}' "
                f"(present in {presence:.0%} of existing records)"
            )

    for name, value in candidate.items():
        profile = schema.fields.get(name)
        if profile is None:
            warnings.append(f"new property: '{name}' (not present in existing records)")
            continue

        actual = value_kind(value)
        if actual not in profile.observed_types:
            expected = " or ".join(kind.value for kind in profile.observed_types)
            errors.append(
                f"type mismatch for '{name}': expected {expected}, got {actual.value}"
            )

    return ValidationReport(
        errors=errors,
        warnings=warnings,
        message=(
            "Record conforms to schema" if not errors else "Validation errors detected"
        ),
        schema_info={
            "total_properties": len(schema.fields),
            "required_properties": len(schema.common_properties),
            "optional_properties": len(schema.optional_properties),
        },
    )


def enforce(report: ValidationReport, policy: ViolationPolicy) -> None:
    """Apply a violation policy to a report.

    Raises:
        SchemaViolationError: If policy is REJECT and the report failed.
    """
    if policy is ViolationPolicy.REJECT and not report.passed:
        raise SchemaViolationError(report)
