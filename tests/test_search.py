"""Tests for search module."""

import pytest

from azure_data_mcp.errors import ConfigurationError
from azure_data_mcp.search import SearchTools

from .conftest import FakeSearchClient, embedding


@pytest.fixture
def search_client() -> FakeSearchClient:
    """Search client over two documents carrying embeddings."""
    return FakeSearchClient(
        {
            "1": {
                "id": "1",
                "title": "Hotel Azure",
                "contentVector": embedding(),
                "location": {"city": "Paris", "geo_embedding": embedding(8)},
                "ratings": list(range(60)),
                "tags": ["pool", "wifi"],
            },
            "2": {"id": "2", "title": "Hotel Blue", "tags": []},
        }
    )


@pytest.fixture
def search_tools(search_client: FakeSearchClient) -> SearchTools:
    """Search tools returning the fake client for every index."""
    return SearchTools(lambda index_name: search_client)


class TestSearchDocuments:
    """Tests for search_documents."""

    def test_results_redacted(self, search_tools: SearchTools) -> None:
        """Vector fields are removed at every mapping level."""
        result = search_tools.search_documents("hotels", "hotel")

        assert result["success"] is True
        first = result["data"]["results"][0]
        assert first == {
            "@search.score": 1.0,
            "id": "1",
            "title": "Hotel Azure",
            "location": {"city": "Paris"},
            "tags": ["pool", "wifi"],
        }

    def test_options_forwarded(
        self, search_tools: SearchTools, search_client: FakeSearchClient
    ) -> None:
        """Options reach the client; highlight fields are joined."""
        result = search_tools.search_documents(
            "hotels",
            "*",
            select=["id", "title"],
            top=5,
            include_total_count=True,
            highlight_fields=["title", "description"],
        )

        assert result["data"]["count"] == 2
        call = search_client.calls[0]
        assert call["search_text"] == "*"
        assert call["select"] == ["id", "title"]
        assert call["top"] == 5
        assert call["highlight_fields"] == "title,description"

    def test_unconfigured(self) -> None:
        """Missing configuration is a failure envelope."""

        def factory(index_name: str) -> FakeSearchClient:
            raise ConfigurationError("Azure AI Search is not configured")

        result = SearchTools(factory).search_documents("hotels", "x")

        assert result == {
            "success": False,
            "error": "Azure AI Search is not configured",
        }


class TestVectorSearch:
    """Tests for vector_search."""

    def test_vector_query(
        self, search_tools: SearchTools, search_client: FakeSearchClient
    ) -> None:
        """A vectorized query is sent and results are redacted."""
        result = search_tools.vector_search(
            "hotels", embedding(), "contentVector", k=3, search_text="pool"
        )

        assert result["success"] is True
        assert all("contentVector" not in r for r in result["data"]["results"])
        call = search_client.calls[0]
        assert call["search_text"] == "pool"
        query = call["vector_queries"][0]
        assert query.k_nearest_neighbors == 3
        assert query.fields == "contentVector"


class TestSemanticSearch:
    """Tests for semantic_search."""

    def test_semantic_query(
        self, search_tools: SearchTools, search_client: FakeSearchClient
    ) -> None:
        """Semantic ranking options reach the client and results are redacted."""
        result = search_tools.semantic_search(
            "hotels", "hotel with a pool", "hotels-semantic", top=2
        )

        assert result["success"] is True
        assert result["data"]["answers"] == []
        first = result["data"]["results"][0]
        assert "contentVector" not in first
        assert "ratings" not in first
        assert first["location"] == {"city": "Paris"}
        call = search_client.calls[0]
        assert call["query_type"] == "semantic"
        assert call["semantic_configuration_name"] == "hotels-semantic"
        assert call["query_answer"] is None
        assert call["top"] == 2

    def test_answers_and_captions(
        self, search_tools: SearchTools, search_client: FakeSearchClient
    ) -> None:
        """Answers and captions come back as plain dicts."""
        result = search_tools.semantic_search(
            "hotels", "pool", "hotels-semantic", answers=1, captions=True
        )

        assert result["data"]["answers"] == [
            {"key": "1", "text": "Hotel Azure", "highlights": "", "score": 0.9}
        ]
        first = result["data"]["results"][0]
        assert first["@search.captions"] == [
            {"text": "Hotel Azure", "highlights": ""}
        ]
        call = search_client.calls[0]
        assert call["query_answer"] == "extractive"
        assert call["query_answer_count"] == 1
        assert call["query_caption"] == "extractive"

    def test_unconfigured(self) -> None:
        """Missing configuration is a failure envelope."""

        def factory(index_name: str) -> FakeSearchClient:
            raise ConfigurationError("Azure AI Search is not configured")

        result = SearchTools(factory).semantic_search("hotels", "x", "default")

        assert result["success"] is False


class TestGetDocument:
    """Tests for get_document."""

    def test_document_redacted(self, search_tools: SearchTools) -> None:
        """Returned document has no vector fields."""
        result = search_tools.get_document("hotels", "1")

        assert result["success"] is True
        assert "contentVector" not in result["data"]
        assert "ratings" not in result["data"]
        assert result["data"]["location"] == {"city": "Paris"}

    def test_missing_document(self, search_tools: SearchTools) -> None:
        """Missing document is a failure envelope."""
        result = search_tools.get_document("hotels", "404")

        assert result["success"] is False
        assert "404" in result["error"]
