"""Exception types for azure-data-mcp."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from azure_data_mcp.validation import ValidationReport


class AzureDataMcpError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(AzureDataMcpError):
    """Required settings are missing or inconsistent."""


class RecordSourceError(AzureDataMcpError):
    """A record source failed to produce its sample."""


class SchemaViolationError(AzureDataMcpError):
    """A record was rejected because it does not conform to the table schema."""

    def __init__(self, report: "ValidationReport") -> None:
        self.report = report
        super().__init__(
            f"{report.message}: {'; '.join(report.errors)}"
            if report.errors
            else report.message
        )
