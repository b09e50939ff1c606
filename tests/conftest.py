"""Shared fixtures and in-memory fakes for the Azure clients."""

import re
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import pytest
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from azure_data_mcp.schema_cache import SchemaCache
from azure_data_mcp.settings import Settings
from azure_data_mcp.tables import TableTools

TIMESTAMP = datetime(2025, 11, 27, 9, 30, tzinfo=timezone.utc)


class FakeTableClient:
    """In-memory stand-in for azure.data.tables.TableClient."""

    def __init__(self, table_name: str, exists: bool = True) -> None:
        self.table_name = table_name
        self.exists = exists
        self.entities: dict[tuple[str, str], dict[str, Any]] = {}
        self.list_calls = 0
        self.transactions: list[list[tuple[Any, ...]]] = []
        self.transaction_error: Exception | None = None

    def add(self, partition_key: str, row_key: str, **properties: Any) -> None:
        self.entities[(partition_key, row_key)] = {
            "PartitionKey": partition_key,
            "RowKey": row_key,
            "Timestamp": TIMESTAMP,
            **properties,
        }

    def _check_exists(self) -> None:
        if not self.exists:
            raise ResourceNotFoundError(f"TableNotFound: {self.table_name}")

    def _select(self, entity: dict[str, Any], select: list[str] | None) -> dict:
        if not select:
            return dict(entity)
        return {k: v for k, v in entity.items() if k in select}

    def list_entities(self, select: list[str] | None = None, **kwargs: Any):
        self.list_calls += 1
        self._check_exists()
        return iter([self._select(e, select) for e in self.entities.values()])

    def query_entities(
        self, query_filter: str, select: list[str] | None = None, **kwargs: Any
    ):
        self._check_exists()
        match = re.fullmatch(r"PartitionKey eq '(.*)'", query_filter)
        assert match, f"unsupported filter: {query_filter}"
        return iter(
            [
                self._select(e, select)
                for e in self.entities.values()
                if e["PartitionKey"] == match.group(1)
            ]
        )

    def create_entity(self, entity: dict[str, Any], **kwargs: Any) -> dict:
        self._check_exists()
        key = (entity["PartitionKey"], entity["RowKey"])
        if key in self.entities:
            raise ResourceExistsError("EntityAlreadyExists")
        self.entities[key] = {**entity, "Timestamp": TIMESTAMP}
        return {}

    def update_entity(self, entity: dict[str, Any], mode: Any, **kwargs: Any) -> dict:
        self._check_exists()
        key = (entity["PartitionKey"], entity["RowKey"])
        if key not in self.entities:
            raise ResourceNotFoundError("ResourceNotFound")
        if mode.value == "merge":
            self.entities[key].update(entity)
        else:
            self.entities[key] = {**entity, "Timestamp": TIMESTAMP}
        return {}

    def delete_entity(self, partition_key: str, row_key: str, **kwargs: Any) -> None:
        self._check_exists()
        self.entities.pop((partition_key, row_key), None)

    def submit_transaction(self, operations: list[tuple[Any, ...]], **kwargs: Any):
        self._check_exists()
        if self.transaction_error is not None:
            raise self.transaction_error
        self.transactions.append(list(operations))
        for operation in operations:
            kind, entity = operation[0], operation[1]
            if kind == "create":
                self.create_entity(entity)
            elif kind == "delete":
                self.delete_entity(entity["PartitionKey"], entity["RowKey"])
            else:
                self.update_entity(entity, **operation[2])
        return []


class FakeTableService:
    """In-memory stand-in for azure.data.tables.TableServiceClient."""

    def __init__(self) -> None:
        self.tables: dict[str, FakeTableClient] = {}

    def create(self, table_name: str) -> FakeTableClient:
        self.tables[table_name] = FakeTableClient(table_name)
        return self.tables[table_name]

    def get_table_client(self, table_name: str) -> FakeTableClient:
        return self.tables.get(table_name) or FakeTableClient(table_name, exists=False)

    def list_tables(self, **kwargs: Any):
        return iter([SimpleNamespace(name=name) for name in self.tables])


class FakeSearchResults:
    """Stand-in for SearchItemPaged."""

    def __init__(
        self,
        results: list[dict[str, Any]],
        count: int | None = None,
        facets: dict[str, Any] | None = None,
        coverage: float | None = None,
        answers: list[Any] | None = None,
    ) -> None:
        self._results = results
        self._answers = answers
        self._count = count
        self._facets = facets
        self._coverage = coverage

    def __iter__(self):
        return iter(self._results)

    def get_count(self) -> int | None:
        return self._count

    def get_facets(self) -> dict[str, Any] | None:
        return self._facets

    def get_coverage(self) -> float | None:
        return self._coverage

    def get_answers(self) -> list[Any] | None:
        return self._answers


class FakeSearchClient:
    """In-memory stand-in for azure.search.documents.SearchClient."""

    def __init__(self, documents: dict[str, dict[str, Any]]) -> None:
        self.documents = documents
        self.calls: list[dict[str, Any]] = []

    def search(self, **kwargs: Any) -> FakeSearchResults:
        self.calls.append(kwargs)
        results = [{"@search.score": 1.0, **doc} for doc in self.documents.values()]
        count = len(results) if kwargs.get("include_total_count") else None
        answers = None
        if kwargs.get("query_answer"):
            answers = [
                SimpleNamespace(
                    key=key, text=doc.get("title"), highlights=None, score=0.9
                )
                for key, doc in self.documents.items()
            ][: kwargs.get("query_answer_count")]
        if kwargs.get("query_caption"):
            for result in results:
                result["@search.captions"] = [
                    SimpleNamespace(text=result.get("title"), highlights=None)
                ]
        return FakeSearchResults(results, count=count, answers=answers)

    def get_document(self, key: str, selected_fields: list[str] | None = None):
        if key not in self.documents:
            raise ResourceNotFoundError(f"Document '{key}' not found")
        return dict(self.documents[key])


def embedding(size: int = 64) -> list[float]:
    """Deterministic fake embedding."""
    return [round(i * 0.01, 2) for i in range(size)]


@pytest.fixture
def table_service() -> FakeTableService:
    """Table service with a populated 'orders' table and an empty 'audit' table."""
    service = FakeTableService()
    orders = service.create("orders")
    for i in range(9):
        orders.add(
            "2025",
            f"order-{i}",
            status="active" if i % 2 else "closed",
            amount=10 * i,
            customer=f"customer-{i}",
        )
    orders.add("2025", "order-9", amount=99, customer="customer-9")
    service.create("audit")
    return service


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(
        storage_connection_string=None,
        storage_account_name=None,
        search_endpoint=None,
        search_api_key=None,
    )


@pytest.fixture
def table_tools(table_service: FakeTableService, settings: Settings) -> TableTools:
    """Table tools over the fake service with caching disabled."""
    return TableTools(table_service, settings, SchemaCache(0))
