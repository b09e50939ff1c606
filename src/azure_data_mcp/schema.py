"""Schema inference module."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from azure_data_mcp.sources import Record, RecordSource
from azure_data_mcp.value_kind import ValueKind, value_kind

# Fields present in at least this share of sampled records are required
REQUIRED_PRESENCE_THRESHOLD = 0.8

# Default number of records sampled for schema inspection
DEFAULT_SAMPLE_SIZE = 10

# Number of records sampled before validating a write
VALIDATION_SAMPLE_SIZE = 20

# Number of raw records echoed back for inspection
MAX_EXAMPLES = 3


@dataclass(frozen=True)
class FieldProfile:
    """Statistics for a single field across a sample of records."""

    name: str
    frequency: int
    """Number of sampled records containing the field."""

    presence: float
    """frequency divided by the number of records actually read."""

    observed_types: tuple[ValueKind, ...]
    """Value kinds seen for the field, in first-seen order."""

    @property
    def required(self) -> bool:
        return self.presence >= REQUIRED_PRESENCE_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        types = [kind.value for kind in self.observed_types]
        return {
            "type": types[0] if len(types) == 1 else types,
            "frequency": self.frequency,
            "presence": self.presence,
            "required": self.required,
        }


@dataclass
class TableSchema:
    """Best-effort shape of a schema-less table derived from a sample."""

    sample_size: int
    fields: dict[str, FieldProfile]
    examples: list[dict[str, Any]] = field(default_factory=list)

    @property
    def common_properties(self) -> list[str]:
        """Names of required fields."""
        return [name for name, profile in self.fields.items() if profile.required]

    @property
    def optional_properties(self) -> list[str]:
        """Names of fields that are not required."""
        return [name for name, profile in self.fields.items() if not profile.required]

    @property
    def type_variations(self) -> dict[str, list[str]]:
        """Fields observed with more than one value kind."""
        return {
            name: [kind.value for kind in profile.observed_types]
            for name, profile in self.fields.items()
            if len(profile.observed_types) > 1
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_empty": False,
            "sample_size": self.sample_size,
            "schema": {name: p.to_dict() for name, p in self.fields.items()},
            "common_properties": self.common_properties,
            "optional_properties": self.optional_properties,
            "type_variations": self.type_variations,
            "examples": self.examples,
        }


@dataclass(frozen=True)
class EmptyTable:
    """Marker for a table with no records to infer a schema from."""

    message: str = "Table is empty; no schema to infer"

    def to_dict(self) -> dict[str, Any]:
        return {"is_empty": True, "message": self.message, "suggested_schema": {}}


EMPTY_TABLE = EmptyTable()


def analyze_records(records: Sequence[Record]) -> TableSchema | EmptyTable:
    """Build a schema from an already materialized sample.

    Args:
        records: Sampled records.

    Returns:
        TableSchema, or EMPTY_TABLE if records is empty.
    """
    if not records:
        return EMPTY_TABLE

    frequency: dict[str, int] = {}
    observed: dict[str, dict[ValueKind, None]] = {}

    for record in records:
        for key, value in record.items():
            frequency[key] = frequency.get(key, 0) + 1
            # dict keeps first-seen order of kinds
            observed.setdefault(key, {})[value_kind(value)] = None

    total = len(records)
    fields = {
        name: FieldProfile(
            name=name,
            frequency=count,
            presence=count / total,
            observed_types=tuple(observed[name]),
        )
        for name, count in frequency.items()
    }

    return TableSchema(
        sample_size=total,
        fields=fields,
        examples=[dict(r) for r in records[:MAX_EXAMPLES]],
    )


def infer_schema(
    source: RecordSource, sample_size: int = DEFAULT_SAMPLE_SIZE
) -> TableSchema | EmptyTable:
    """Infer the shape of a table from a sample of its records.

    Presence ratios are computed against the number of records actually
    read, which may be fewer than sample_size.

    Args:
        source: Record source to sample from.
        sample_size: Maximum number of records to read.

    Returns:
        TableSchema, or EMPTY_TABLE if the source produced no records.

    Raises:
        ValueError: If sample_size is not a positive integer.
        RecordSourceError: If the source fails to read.
    """
    if isinstance(sample_size, bool) or not isinstance(sample_size, int):
        raise ValueError(f"sample_size must be an integer, got {sample_size!r}")
    if sample_size < 1:
        raise ValueError(f"sample_size must be positive, got {sample_size}")

    records = list(source.read_sample(sample_size))[:sample_size]
    return analyze_records(records)
