"""MCP server for Azure Table Storage and Azure AI Search."""

from azure_data_mcp.redaction import is_vector_field, redact, redact_batch
from azure_data_mcp.schema import (
    EMPTY_TABLE,
    REQUIRED_PRESENCE_THRESHOLD,
    EmptyTable,
    FieldProfile,
    TableSchema,
    analyze_records,
    infer_schema,
)
from azure_data_mcp.sources import ListRecordSource, RecordSource, TableRecordSource
from azure_data_mcp.validation import (
    ValidationReport,
    ViolationPolicy,
    enforce,
    validate,
)
from azure_data_mcp.value_kind import ValueKind, value_kind

__all__ = [
    "EMPTY_TABLE",
    "REQUIRED_PRESENCE_THRESHOLD",
    "EmptyTable",
    "FieldProfile",
    "ListRecordSource",
    "RecordSource",
    "TableRecordSource",
    "TableSchema",
    "ValidationReport",
    "ValueKind",
    "ViolationPolicy",
    "analyze_records",
    "enforce",
    "infer_schema",
    "is_vector_field",
    "redact",
    "redact_batch",
    "validate",
    "value_kind",
]
