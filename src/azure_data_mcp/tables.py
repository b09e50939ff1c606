"""Azure Table Storage tools with advisory schema validation."""

import itertools
import logging
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal

from azure.core.exceptions import (
    AzureError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from azure.data.tables import TableClient, TableServiceClient, UpdateMode
from pydantic import BaseModel, Field

from azure_data_mcp.envelope import failure, success, to_jsonable
from azure_data_mcp.errors import RecordSourceError, SchemaViolationError
from azure_data_mcp.schema import EmptyTable, TableSchema, infer_schema
from azure_data_mcp.schema_cache import SchemaCache
from azure_data_mcp.settings import Settings
from azure_data_mcp.sources import TableRecordSource, clean_entity
from azure_data_mcp.validation import (
    ValidationReport,
    ViolationPolicy,
    enforce,
    validate,
)

logger = logging.getLogger(__name__)

TableName = Annotated[
    str,
    Field(
        pattern=r"^[A-Za-z][A-Za-z0-9]{2,62}$",
        description="Table name: a letter followed by 2-62 letters or digits",
    ),
]
EntityKey = Annotated[
    str,
    Field(
        min_length=1,
        max_length=1024,
        pattern=r"^[^/\\#?]*$",
        description="Entity key, without the characters / \\ # ?",
    ),
]
UpdateModeName = Literal["merge", "replace"]
BatchOperation = Literal["create", "update", "delete"]

DEFAULT_MAX_RESULTS = 100

BATCH_STATUS = {"create": "created", "update": "updated", "delete": "deleted"}


class EntityKeyInput(BaseModel):
    """Keys of one entity in a batch delete."""

    partition_key: EntityKey
    row_key: EntityKey


class EntityInput(EntityKeyInput):
    """One entity of a batch create or update."""

    entity: dict[str, Any]
    mode: UpdateModeName = "merge"


class TableTools:
    """Table operations returning response envelopes.

    Writes are validated against a schema inferred from existing entities.
    With the default "warn" policy the outcome is attached to the response
    and the write always proceeds.
    """

    def __init__(
        self,
        service: TableServiceClient,
        settings: Settings,
        cache: SchemaCache,
    ) -> None:
        """Initialize the table tools.

        Args:
            service: Table service client.
            settings: Application settings.
            cache: Schema cache, invalidated after every write.
        """
        self._service = service
        self._settings = settings
        self._cache = cache

    def _client(self, table_name: str) -> TableClient:
        return self._service.get_table_client(table_name)

    def list_tables(self) -> dict[str, Any]:
        """List table names in the storage account."""
        try:
            names = [table.name for table in self._service.list_tables()]
        except AzureError as e:
            logger.error(f"Failed to list tables: {e}")
            return failure(e)
        return success(names, count=len(names))

    def read_table(
        self,
        table_name: str,
        filter: str | None = None,
        select: list[str] | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> dict[str, Any]:
        """Read entities from a table.

        Args:
            table_name: Table to read.
            filter: Optional OData filter (e.g. "PartitionKey eq 'p1'").
            select: Optional list of properties to return.
            max_results: Maximum number of entities to return.

        Returns:
            Envelope with the entities, count and table_name.
        """
        logger.info(f"Reading up to {max_results} entities from '{table_name}'")
        client = self._client(table_name)
        try:
            if filter:
                entities = client.query_entities(query_filter=filter, select=select)
            else:
                entities = client.list_entities(select=select)
            data = [
                to_jsonable(clean_entity(e))
                for e in itertools.islice(entities, max_results)
            ]
        except AzureError as e:
            logger.error(f"Failed to read table '{table_name}': {e}")
            return failure(e, table_name=table_name)
        return success(data, count=len(data), table_name=table_name)

    def infer(self, table_name: str, sample_size: int) -> TableSchema | EmptyTable:
        """Infer a table schema, going through the schema cache.

        Raises:
            RecordSourceError: If the table cannot be sampled.
        """
        schema = self._cache.get(table_name, sample_size)
        if schema is None:
            source = TableRecordSource(self._client(table_name))
            schema = infer_schema(source, sample_size)
            self._cache.put(table_name, sample_size, schema)
        return schema

    def inspect_schema(
        self, table_name: str, sample_size: int | None = None
    ) -> dict[str, Any]:
        """Infer the schema of a table from a sample of its entities.

        Args:
            table_name: Table to inspect.
            sample_size: Number of entities to sample (default from settings).

        Returns:
            Envelope with the schema dict, or an is_empty marker.
        """
        sample_size = sample_size or self._settings.schema_sample_size
        logger.info(f"Inferring schema of '{table_name}' from {sample_size} entities")
        try:
            schema = self.infer(table_name, sample_size)
        except RecordSourceError as e:
            logger.error(str(e))
            return failure(e, table_name=table_name)
        return success(to_jsonable(schema.to_dict()), table_name=table_name)

    def check_entities(
        self, table_name: str, entities: list[Mapping[str, Any]]
    ) -> list[ValidationReport]:
        """Validate entity bodies against the table's inferred schema.

        The schema is inferred once for all entities. If the table cannot be
        sampled every report says validation was skipped; it never raises.
        """
        try:
            schema = self.infer(table_name, self._settings.validation_sample_size)
        except RecordSourceError as e:
            logger.warning(f"Schema validation skipped for '{table_name}': {e}")
            return [ValidationReport.skipped(str(e)) for _ in entities]

        reports = [validate(schema, entity) for entity in entities]
        errors = sum(len(r.errors) for r in reports)
        warnings = sum(len(r.warnings) for r in reports)
        if errors or warnings:
            logger.warning(
                f"Schema validation for '{table_name}': "
                f"{errors} errors, {warnings} warnings"
            )
        return reports

    def check_entity(
        self, table_name: str, entity: Mapping[str, Any]
    ) -> ValidationReport:
        """Validate a single entity body. See check_entities."""
        return self.check_entities(table_name, [entity])[0]

    def validate_entity(
        self, table_name: str, entity: dict[str, Any]
    ) -> dict[str, Any]:
        """Validate an entity without writing it."""
        report = self.check_entity(table_name, entity)
        return success(report.to_dict(), table_name=table_name)

    def create_entity(
        self,
        table_name: str,
        partition_key: str,
        row_key: str,
        entity: dict[str, Any],
    ) -> dict[str, Any]:
        """Create an entity after validating it against the table schema.

        Returns:
            Envelope with the keys and schema_validation report.
        """
        logger.info(f"Creating entity ({partition_key}, {row_key}) in '{table_name}'")
        report = self.check_entity(table_name, entity)
        body = {**entity, "PartitionKey": partition_key, "RowKey": row_key}

        try:
            enforce(report, self._settings.on_violation)
            self._client(table_name).create_entity(entity=body)
        except SchemaViolationError as e:
            logger.warning(f"Rejected entity for '{table_name}': {e}")
            return failure(
                e,
                table_name=table_name,
                error_type="SchemaViolation",
                schema_validation=report.to_dict(),
            )
        except ResourceExistsError:
            return failure(
                f"An entity with PartitionKey='{partition_key}' and "
                f"RowKey='{row_key}' already exists in table '{table_name}'. "
                "Use update_entity to modify it.",
                table_name=table_name,
                error_type="EntityAlreadyExists",
            )
        except ResourceNotFoundError:
            return failure(
                f"Table '{table_name}' does not exist. "
                "Create it first or check the name.",
                table_name=table_name,
                error_type="TableNotFound",
            )
        except AzureError as e:
            logger.error(f"Failed to create entity in '{table_name}': {e}")
            return failure(e, table_name=table_name)

        self._cache.invalidate(table_name)
        return success(
            {
                "partition_key": partition_key,
                "row_key": row_key,
                "message": "Entity created",
                "entity_size": len(entity),
                "schema_validation": report.to_dict(),
            },
            table_name=table_name,
        )

    def update_entity(
        self,
        table_name: str,
        partition_key: str,
        row_key: str,
        entity: dict[str, Any],
        mode: UpdateModeName = "merge",
    ) -> dict[str, Any]:
        """Update an entity after validating it against the table schema.

        Args:
            mode: "merge" keeps properties not in entity, "replace" drops them.
        """
        logger.info(
            f"Updating entity ({partition_key}, {row_key}) in '{table_name}' ({mode})"
        )
        report = self.check_entity(table_name, entity)
        body = {**entity, "PartitionKey": partition_key, "RowKey": row_key}

        try:
            enforce(report, self._settings.on_violation)
            self._client(table_name).update_entity(entity=body, mode=UpdateMode(mode))
        except SchemaViolationError as e:
            logger.warning(f"Rejected entity for '{table_name}': {e}")
            return failure(
                e,
                table_name=table_name,
                error_type="SchemaViolation",
                schema_validation=report.to_dict(),
            )
        except ResourceNotFoundError as e:
            return failure(e, table_name=table_name, error_type="ResourceNotFound")
        except AzureError as e:
            logger.error(f"Failed to update entity in '{table_name}': {e}")
            return failure(e, table_name=table_name)

        self._cache.invalidate(table_name)
        return success(
            {
                "partition_key": partition_key,
                "row_key": row_key,
                "mode": mode,
                "message": "Entity updated",
                "schema_validation": report.to_dict(),
            },
            table_name=table_name,
        )

    def delete_entity(
        self, table_name: str, partition_key: str, row_key: str
    ) -> dict[str, Any]:
        """Delete an entity by its keys."""
        logger.info(f"Deleting entity ({partition_key}, {row_key}) from '{table_name}'")
        try:
            self._client(table_name).delete_entity(
                partition_key=partition_key, row_key=row_key
            )
        except AzureError as e:
            logger.error(f"Failed to delete entity from '{table_name}': {e}")
            return failure(e, table_name=table_name)

        self._cache.invalidate(table_name)
        return success(
            {
                "partition_key": partition_key,
                "row_key": row_key,
                "message": "Entity deleted",
            },
            table_name=table_name,
        )

    def batch_create_entities(
        self, table_name: str, entities: list[EntityInput]
    ) -> dict[str, Any]:
        """Create entities in one transaction per partition key."""
        return self._submit_batch(table_name, entities, "create")

    def batch_update_entities(
        self, table_name: str, entities: list[EntityInput]
    ) -> dict[str, Any]:
        """Update entities in one transaction per partition key.

        Each entity uses its own mode.
        """
        return self._submit_batch(table_name, entities, "update")

    def batch_delete_entities(
        self, table_name: str, entities: list[EntityKeyInput]
    ) -> dict[str, Any]:
        """Delete entities by key in one transaction per partition key.

        Deletes are not validated, so entity details carry no schema_validation.
        """
        return self._submit_batch(table_name, entities, "delete")

    def _submit_batch(
        self,
        table_name: str,
        entities: Sequence[EntityKeyInput],
        operation: BatchOperation,
    ) -> dict[str, Any]:
        logger.info(f"Batch {operation} of {len(entities)} entities in '{table_name}'")
        reports: list[ValidationReport | None]
        if operation == "delete":
            reports = [None] * len(entities)
        else:
            reports = list(
                self.check_entities(table_name, [item.entity for item in entities])
            )

        # Transactions cannot span partitions
        partitions: dict[str, list[tuple[Any, ValidationReport | None]]] = {}
        for item, report in zip(entities, reports, strict=True):
            partitions.setdefault(item.partition_key, []).append((item, report))

        client = self._client(table_name)
        status = BATCH_STATUS[operation]
        details: list[dict[str, Any]] = []

        for partition_key, group in partitions.items():
            rejected = [r for _, r in group if r is not None and not r.passed]

            error: str | None = None
            if self._settings.on_violation is ViolationPolicy.REJECT and rejected:
                error = f"{len(rejected)} entities failed schema validation"
                logger.warning(f"Rejected partition '{partition_key}': {error}")
            else:
                try:
                    client.submit_transaction(
                        [self._operation(operation, item) for item, _ in group]
                    )
                except AzureError as e:
                    logger.error(
                        f"Batch {operation} failed for partition '{partition_key}': {e}"
                    )
                    error = str(e) or type(e).__name__

            entity_results = []
            for item, report in group:
                entity_result: dict[str, Any] = {
                    "partition_key": item.partition_key,
                    "row_key": item.row_key,
                    "status": status if error is None else "failed",
                }
                if report is not None:
                    entity_result["schema_validation"] = report.to_dict()
                entity_results.append(entity_result)

            group_result: dict[str, Any] = {
                "partition_key": partition_key,
                "success": error is None,
                "count": len(group),
                "entities": entity_results,
            }
            if error is not None:
                group_result["error"] = error
            details.append(group_result)

        self._cache.invalidate(table_name)

        successful = sum(d["count"] for d in details if d["success"])
        failed = sum(d["count"] for d in details if not d["success"])
        data = {
            "total_entities": len(entities),
            "successful": successful,
            "failed": failed,
            "partitions": len(details),
            "details": details,
        }
        if failed:
            return failure(
                f"{failed} of {len(entities)} entities failed",
                table_name=table_name,
                data=data,
            )
        return success(data, table_name=table_name)

    @staticmethod
    def _operation(operation: BatchOperation, item: Any) -> tuple[Any, ...]:
        keys = {"PartitionKey": item.partition_key, "RowKey": item.row_key}
        if operation == "delete":
            return ("delete", keys)
        body = {**item.entity, **keys}
        if operation == "create":
            return ("create", body)
        return ("update", body, {"mode": UpdateMode(item.mode)})
