"""MCP Server implementation using FastMCP."""

import json
import logging
import sys
from typing import Annotated, Any, Callable, Literal

from mcp.server.fastmcp import FastMCP
from pydantic import Field, ValidationError

from azure_data_mcp.context import get_search_tools, get_table_tools
from azure_data_mcp.envelope import failure
from azure_data_mcp.errors import ConfigurationError
from azure_data_mcp.settings import get_settings
from azure_data_mcp.tables import (
    DEFAULT_MAX_RESULTS,
    EntityInput,
    EntityKey,
    EntityKeyInput,
    TableName,
    TableTools,
    UpdateModeName,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

mcp = FastMCP("azure-data-mcp")


def _with_table_tools(call: Callable[[TableTools], dict[str, Any]]) -> dict[str, Any]:
    """Run a table operation, or fail when table storage is not configured."""
    try:
        tools = get_table_tools()
    except ConfigurationError as e:
        logger.error(str(e))
        return failure(e, error_type="ConfigurationError")
    return call(tools)


@mcp.tool()
def list_tables() -> dict[str, Any]:
    """List the tables in the storage account.

    Returns:
        Envelope with table names and count.
    """
    return _with_table_tools(lambda tools: tools.list_tables())


@mcp.tool()
def read_table(
    table_name: TableName,
    filter: str | None = None,
    select: list[str] | None = None,
    max_results: Annotated[int, Field(ge=1, le=1000)] = DEFAULT_MAX_RESULTS,
) -> dict[str, Any]:
    """Read entities from a table.

    Args:
        table_name: Table to read.
        filter: OData filter (e.g. "PartitionKey eq 'partition1'").
        select: Properties to return.
        max_results: Maximum number of entities to return (1-1000).

    Returns:
        Envelope with entities, count and table_name.
    """
    return _with_table_tools(
        lambda tools: tools.read_table(table_name, filter, select, max_results)
    )


@mcp.tool()
def inspect_table_schema(
    table_name: TableName,
    sample_size: Annotated[int, Field(ge=1, le=1000)] | None = None,
) -> dict[str, Any]:
    """Infer the schema of a table from a sample of existing entities.

    Args:
        table_name: Table to inspect.
        sample_size: Number of entities to sample (default: 10).

    Returns:
        Envelope with per-property type, frequency, presence and required
        flag, common/optional properties, type variations and up to 3
        example entities. Empty tables return is_empty=true.
    """
    return _with_table_tools(
        lambda tools: tools.inspect_schema(table_name, sample_size)
    )


@mcp.tool()
def validate_entity(table_name: TableName, entity: dict[str, Any]) -> dict[str, Any]:
    """Check an entity against the table's inferred schema without writing it.

    Args:
        table_name: Target table.
        entity: Entity properties, without PartitionKey and RowKey.

    Returns:
        Envelope with conforms_to_schema, errors and warnings.
    """
    return _with_table_tools(lambda tools: tools.validate_entity(table_name, entity))


@mcp.tool()
def create_entity(
    table_name: TableName,
    partition_key: EntityKey,
    row_key: EntityKey,
    entity: dict[str, Any],
) -> dict[str, Any]:
    """Create an entity in a table.

    Args:
        table_name: Target table.
        partition_key: Partition key of the new entity.
        row_key: Row key of the new entity.
        entity: Entity properties.

    Returns:
        Envelope with the keys and a schema_validation report.

    Notes:
        - The entity is validated against a schema inferred from existing
          entities. Type mismatches are errors; missing common properties and
          new properties are warnings.
        - Unless AZURE_ON_VIOLATION=reject, the entity is written regardless
          of the validation outcome.
    """
    return _with_table_tools(
        lambda tools: tools.create_entity(table_name, partition_key, row_key, entity)
    )


@mcp.tool()
def update_entity(
    table_name: TableName,
    partition_key: EntityKey,
    row_key: EntityKey,
    entity: dict[str, Any],
    mode: UpdateModeName = "merge",
) -> dict[str, Any]:
    """Update an existing entity.

    Args:
        table_name: Target table.
        partition_key: Partition key of the entity.
        row_key: Row key of the entity.
        entity: Properties to write.
        mode: "merge" keeps properties not given, "replace" removes them.

    Returns:
        Envelope with the keys, mode and a schema_validation report.
    """
    return _with_table_tools(
        lambda tools: tools.update_entity(
            table_name, partition_key, row_key, entity, mode
        )
    )


@mcp.tool()
def delete_entity(
    table_name: TableName,
    partition_key: EntityKey,
    row_key: EntityKey,
) -> dict[str, Any]:
    """Delete an entity by its keys.

    Returns:
        Envelope with the deleted keys.
    """
    return _with_table_tools(
        lambda tools: tools.delete_entity(table_name, partition_key, row_key)
    )


@mcp.tool()
def batch_create_entities(
    table_name: TableName,
    entities: Annotated[list[EntityInput], Field(min_length=1, max_length=100)],
) -> dict[str, Any]:
    """Create up to 100 entities.

    Args:
        table_name: Target table.
        entities: Entities with partition_key, row_key and entity properties.

    Returns:
        Envelope with total_entities, successful, failed, partitions and
        per-partition details including each entity's schema_validation.

    Notes:
        - Entities are grouped by partition key; each group is one transaction.
        - A failed group does not affect other groups.
    """
    return _with_table_tools(
        lambda tools: tools.batch_create_entities(table_name, entities)
    )


@mcp.tool()
def batch_update_entities(
    table_name: TableName,
    entities: Annotated[list[EntityInput], Field(min_length=1, max_length=100)],
) -> dict[str, Any]:
    """Update up to 100 entities.

    Args:
        table_name: Target table.
        entities: Entities with partition_key, row_key, entity properties and
            mode ("merge" or "replace").

    Returns:
        Envelope with total_entities, successful, failed, partitions and
        per-partition details.
    """
    return _with_table_tools(
        lambda tools: tools.batch_update_entities(table_name, entities)
    )


@mcp.tool()
def batch_delete_entities(
    table_name: TableName,
    entities: Annotated[list[EntityKeyInput], Field(min_length=1, max_length=100)],
) -> dict[str, Any]:
    """Delete up to 100 entities by key.

    Args:
        table_name: Target table.
        entities: Entity keys (partition_key and row_key).

    Returns:
        Envelope with total_entities, successful, failed, partitions and
        per-partition details.
    """
    return _with_table_tools(
        lambda tools: tools.batch_delete_entities(table_name, entities)
    )


@mcp.tool()
def search_documents(
    index_name: str,
    search_text: str,
    search_mode: Literal["any", "all"] | None = None,
    search_fields: list[str] | None = None,
    select: list[str] | None = None,
    filter: str | None = None,
    order_by: list[str] | None = None,
    top: Annotated[int, Field(ge=1, le=1000)] | None = None,
    skip: Annotated[int, Field(ge=0)] | None = None,
    include_total_count: bool = False,
    facets: list[str] | None = None,
    highlight_fields: list[str] | None = None,
    query_type: Literal["simple", "full"] | None = None,
) -> dict[str, Any]:
    """Search documents in an Azure AI Search index.

    Args:
        index_name: Index to search.
        search_text: Query text ("*" matches everything).
        search_mode: "any" or "all" terms must match.
        search_fields: Fields to search in.
        select: Fields to return.
        filter: OData filter expression.
        order_by: Sort expressions (e.g. ["rating desc"]).
        top: Number of results.
        skip: Number of results to skip.
        include_total_count: Include the total match count.
        facets: Facet expressions.
        highlight_fields: Fields to highlight.
        query_type: "simple" or "full" Lucene syntax.

    Returns:
        Envelope with results, count, facets and coverage. Embedding vector
        fields are removed from every result.
    """
    return get_search_tools().search_documents(
        index_name,
        search_text,
        search_mode=search_mode,
        search_fields=search_fields,
        select=select,
        filter=filter,
        order_by=order_by,
        top=top,
        skip=skip,
        include_total_count=include_total_count,
        facets=facets,
        highlight_fields=highlight_fields,
        query_type=query_type,
    )


@mcp.tool()
def vector_search(
    index_name: str,
    vector: list[float],
    fields: str,
    k: Annotated[int, Field(ge=1)] = 10,
    search_text: str | None = None,
    select: list[str] | None = None,
    filter: str | None = None,
    top: Annotated[int, Field(ge=1, le=1000)] | None = None,
    exhaustive: bool | None = None,
) -> dict[str, Any]:
    """Run a vector similarity query, or a hybrid query with search_text.

    Args:
        index_name: Index to search.
        vector: Query embedding.
        fields: Comma-separated vector fields to compare against.
        k: Number of nearest neighbors.
        search_text: Optional text to combine with the vector query.
        select: Fields to return.
        filter: OData filter expression.
        top: Number of results.
        exhaustive: Force exhaustive KNN instead of the approximate index.

    Returns:
        Envelope with results and count. Embedding vector fields are removed.
    """
    return get_search_tools().vector_search(
        index_name,
        vector,
        fields,
        k=k,
        search_text=search_text,
        select=select,
        filter=filter,
        top=top,
        exhaustive=exhaustive,
    )


@mcp.tool()
def semantic_search(
    index_name: str,
    search_text: str,
    semantic_configuration: str,
    search_fields: list[str] | None = None,
    select: list[str] | None = None,
    filter: str | None = None,
    order_by: list[str] | None = None,
    top: Annotated[int, Field(ge=1, le=1000)] | None = None,
    skip: Annotated[int, Field(ge=0)] | None = None,
    include_total_count: bool = False,
    answers: Annotated[int, Field(ge=1, le=10)] | None = None,
    answer_threshold: Annotated[float, Field(ge=0, le=1)] | None = None,
    captions: bool = False,
    caption_highlight: bool | None = None,
) -> dict[str, Any]:
    """Run a semantic ranking query against an index.

    Args:
        index_name: Index to search.
        search_text: Natural language query.
        semantic_configuration: Semantic configuration defined on the index.
        search_fields: Fields to search in.
        select: Fields to return.
        filter: OData filter expression.
        order_by: Sort expressions.
        top: Number of results.
        skip: Number of results to skip.
        include_total_count: Include the total match count.
        answers: Number of extractive answers to return.
        answer_threshold: Minimum confidence of returned answers.
        captions: Return extractive captions with each result.
        caption_highlight: Highlight caption terms.

    Returns:
        Envelope with results, count and answers. Embedding vector fields
        are removed from every result.
    """
    return get_search_tools().semantic_search(
        index_name,
        search_text,
        semantic_configuration,
        search_fields=search_fields,
        select=select,
        filter=filter,
        order_by=order_by,
        top=top,
        skip=skip,
        include_total_count=include_total_count,
        answers=answers,
        answer_threshold=answer_threshold,
        captions=captions,
        caption_highlight=caption_highlight,
    )


@mcp.tool()
def get_document(
    index_name: str, key: str, select: list[str] | None = None
) -> dict[str, Any]:
    """Get a document by key.

    Returns:
        Envelope with the document, embedding vector fields removed.
    """
    return get_search_tools().get_document(index_name, key, select)


@mcp.resource("azure-table://{table_name}/schema", mime_type="application/json")
def table_schema(table_name: str) -> str:
    """Inferred schema of an Azure table."""
    result = _with_table_tools(lambda tools: tools.inspect_schema(table_name))
    return json.dumps(result, default=str, indent=2)


def main() -> None:
    """Entry point for the MCP server."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        sys.exit(1)

    if not (
        settings.storage_connection_string
        or settings.storage_account_name
        or settings.search_enabled
    ):
        print(
            "Error: set AZURE_STORAGE_CONNECTION_STRING, AZURE_STORAGE_ACCOUNT_NAME "
            "or AZURE_SEARCH_ENDPOINT",
            file=sys.stderr,
        )
        sys.exit(1)

    # stdout carries the MCP protocol
    logging.basicConfig(
        level=settings.log_level.upper(), format=LOG_FORMAT, stream=sys.stderr
    )
    logger.info("Starting azure-data-mcp")
    mcp.run()


if __name__ == "__main__":
    main()
