"""Azure AI Search tools with vector field redaction."""

import logging
from typing import Any, Callable, Literal

from azure.core.exceptions import AzureError
from azure.search.documents import SearchClient
from azure.search.documents.models import VectorizedQuery

from azure_data_mcp.envelope import failure, success, to_jsonable
from azure_data_mcp.errors import ConfigurationError
from azure_data_mcp.redaction import redact, redact_batch

logger = logging.getLogger(__name__)


class SearchTools:
    """Search operations returning response envelopes.

    Every document returned to the caller has its embedding vector fields
    removed first.
    """

    def __init__(self, client_factory: Callable[[str], SearchClient]) -> None:
        """Initialize the search tools.

        Args:
            client_factory: Callable returning a search client for an index name.
        """
        self._client_factory = client_factory

    def search_documents(
        self,
        index_name: str,
        search_text: str,
        search_mode: Literal["any", "all"] | None = None,
        search_fields: list[str] | None = None,
        select: list[str] | None = None,
        filter: str | None = None,
        order_by: list[str] | None = None,
        top: int | None = None,
        skip: int | None = None,
        include_total_count: bool = False,
        facets: list[str] | None = None,
        highlight_fields: list[str] | None = None,
        query_type: Literal["simple", "full"] | None = None,
    ) -> dict[str, Any]:
        """Run a full-text search query.

        Returns:
            Envelope with results, count, facets and coverage.
        """
        logger.info(f"Searching '{index_name}' for {search_text!r}")
        try:
            client = self._client_factory(index_name)
            response = client.search(
                search_text=search_text,
                search_mode=search_mode,
                search_fields=search_fields,
                select=select,
                filter=filter,
                order_by=order_by,
                top=top,
                skip=skip,
                include_total_count=include_total_count,
                facets=facets,
                highlight_fields=(
                    ",".join(highlight_fields) if highlight_fields else None
                ),
                query_type=query_type,
            )
            results = list(response)
            data = {
                "results": redact_batch(results),
                "count": response.get_count(),
                "facets": response.get_facets(),
                "coverage": response.get_coverage(),
            }
        except (AzureError, ConfigurationError) as e:
            logger.error(f"Search on '{index_name}' failed: {e}")
            return failure(e)
        return success(to_jsonable(data))

    def vector_search(
        self,
        index_name: str,
        vector: list[float],
        fields: str,
        k: int = 10,
        search_text: str | None = None,
        select: list[str] | None = None,
        filter: str | None = None,
        top: int | None = None,
        exhaustive: bool | None = None,
    ) -> dict[str, Any]:
        """Run a vector query, or a hybrid query when search_text is given.

        Args:
            vector: Query embedding.
            fields: Comma-separated vector fields to search.
            k: Number of nearest neighbors.
            search_text: Optional text for hybrid search.

        Returns:
            Envelope with results and count.
        """
        logger.info(f"Vector search on '{index_name}' ({fields}, k={k})")
        query = VectorizedQuery(
            vector=vector,
            k_nearest_neighbors=k,
            fields=fields,
            exhaustive=exhaustive,
        )
        try:
            client = self._client_factory(index_name)
            response = client.search(
                search_text=search_text,
                vector_queries=[query],
                select=select,
                filter=filter,
                top=top,
            )
            results = list(response)
            data = {
                "results": redact_batch(results),
                "count": response.get_count(),
            }
        except (AzureError, ConfigurationError) as e:
            logger.error(f"Vector search on '{index_name}' failed: {e}")
            return failure(e)
        return success(to_jsonable(data))

    def semantic_search(
        self,
        index_name: str,
        search_text: str,
        semantic_configuration: str,
        search_fields: list[str] | None = None,
        select: list[str] | None = None,
        filter: str | None = None,
        order_by: list[str] | None = None,
        top: int | None = None,
        skip: int | None = None,
        include_total_count: bool = False,
        answers: int | None = None,
        answer_threshold: float | None = None,
        captions: bool = False,
        caption_highlight: bool | None = None,
    ) -> dict[str, Any]:
        """Run a query re-ranked by a semantic configuration of the index.

        Args:
            semantic_configuration: Name of the semantic configuration.
            answers: Number of extractive answers to request, if any.
            answer_threshold: Minimum answer confidence.
            captions: Request extractive captions for each result.
            caption_highlight: Highlight caption terms.

        Returns:
            Envelope with results, count and answers.
        """
        logger.info(
            f"Semantic search on '{index_name}' ({semantic_configuration}) "
            f"for {search_text!r}"
        )
        try:
            client = self._client_factory(index_name)
            response = client.search(
                search_text=search_text,
                query_type="semantic",
                semantic_configuration_name=semantic_configuration,
                search_fields=search_fields,
                select=select,
                filter=filter,
                order_by=order_by,
                top=top,
                skip=skip,
                include_total_count=include_total_count,
                query_answer="extractive" if answers else None,
                query_answer_count=answers,
                query_answer_threshold=answer_threshold,
                query_caption="extractive" if captions else None,
                query_caption_highlight_enabled=caption_highlight,
            )
            results = [_plain_captions(r) for r in redact_batch(list(response))]
            data = {
                "results": results,
                "count": response.get_count(),
                "answers": [
                    {
                        "key": answer.key or "",
                        "text": answer.text or "",
                        "highlights": answer.highlights or "",
                        "score": answer.score or 0,
                    }
                    for answer in response.get_answers() or []
                ],
            }
        except (AzureError, ConfigurationError) as e:
            logger.error(f"Semantic search on '{index_name}' failed: {e}")
            return failure(e)
        return success(to_jsonable(data))

    def get_document(
        self, index_name: str, key: str, select: list[str] | None = None
    ) -> dict[str, Any]:
        """Fetch a single document by key."""
        logger.info(f"Getting document '{key}' from '{index_name}'")
        try:
            client = self._client_factory(index_name)
            document = client.get_document(key=key, selected_fields=select)
        except (AzureError, ConfigurationError) as e:
            logger.error(f"Get document '{key}' from '{index_name}' failed: {e}")
            return failure(e)
        return success(to_jsonable(redact(document)))


def _plain_captions(result: dict[str, Any]) -> dict[str, Any]:
    """Replace caption objects of a semantic result with dicts."""
    captions = result.get("@search.captions")
    if captions:
        result["@search.captions"] = [
            {"text": caption.text or "", "highlights": caption.highlights or ""}
            for caption in captions
        ]
    return result
