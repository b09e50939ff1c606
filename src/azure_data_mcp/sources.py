"""Record sources used to sample tables for schema inference."""

import itertools
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from azure.core.exceptions import AzureError
from azure.data.tables import EntityProperty, TableClient

from azure_data_mcp.errors import RecordSourceError

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

# Keys managed by the table service rather than by callers
SYSTEM_PROPERTIES = frozenset({"PartitionKey", "RowKey", "Timestamp"})


class RecordSource(Protocol):
    """Anything that can produce a sample of records."""

    def read_sample(self, max_count: int) -> list[Record]:
        """Return at most max_count records."""
        ...


class ListRecordSource:
    """Record source over an in-memory iterable."""

    def __init__(self, records: Iterable[Record]) -> None:
        self._records = records

    def read_sample(self, max_count: int) -> list[Record]:
        return list(itertools.islice(self._records, max_count))


def clean_entity(
    entity: Mapping[str, Any], strip_system_properties: bool = False
) -> dict[str, Any]:
    """Remove OData metadata from a table entity.

    Args:
        entity: Entity as returned by the table client.
        strip_system_properties: Also drop PartitionKey, RowKey and Timestamp.

    Returns:
        Plain dict with EntityProperty values unwrapped.
    """
    cleaned: dict[str, Any] = {}
    for key, value in entity.items():
        if key.startswith("odata.") or key.startswith("@odata."):
            continue
        if strip_system_properties and key in SYSTEM_PROPERTIES:
            continue
        if isinstance(value, EntityProperty):
            value = value.value
        cleaned[key] = value
    return cleaned


class TableRecordSource:
    """Record source reading entities from an Azure table."""

    def __init__(
        self, table_client: TableClient, strip_system_properties: bool = True
    ) -> None:
        """Initialize the source.

        Args:
            table_client: Client for the table to sample.
            strip_system_properties: Exclude PartitionKey, RowKey and Timestamp
                from sampled records. Candidate entity bodies never carry
                these, so profiling them would flag every write.
        """
        self._client = table_client
        self._strip = strip_system_properties

    def read_sample(self, max_count: int) -> list[Record]:
        try:
            entities = itertools.islice(self._client.list_entities(), max_count)
            records = [clean_entity(e, self._strip) for e in entities]
        except AzureError as e:
            raise RecordSourceError(
                f"Failed to sample table '{self._client.table_name}': {e}"
            ) from e

        logger.debug(
            f"Sampled {len(records)} records from '{self._client.table_name}'"
        )
        return records
