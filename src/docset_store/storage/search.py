"""Similarity search over a document set."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from docset_store.storage.base import SearchResult
from docset_store.storage.errors import SearchError
from docset_store.storage.filters import FilterCondition, translate_filters
from docset_store.storage.metadata_codec import decode_metadata
from docset_store.storage.registry import DocumentSetRegistry

_QUERY_INCLUDE = ["documents", "metadatas", "distances"]


def _first_row(results: Mapping[str, Any], key: str) -> Sequence[Any]:
    """Return the row for the single query embedding, or an empty row."""
    rows = results.get(key)
    if not rows:
        return []
    return rows[0] or []


def _at(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


class SearchResultAssembler:
    """Runs nearest-neighbour queries and shapes their results."""

    def __init__(self, registry: DocumentSetRegistry) -> None:
        self._registry = registry

    async def search_documents(
        self,
        set_id: str,
        embedding: list[float],
        limit: int = 10,
        filters: Mapping[str, FilterCondition] | None = None,
    ) -> list[SearchResult]:
        """Return up to ``limit`` chunks nearest to ``embedding``.

        Similarity is ``1 - distance`` and is not clamped.

        Raises:
            ValueError: If ``limit`` is less than 1.
            SearchError: If the backend query fails.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        where = translate_filters(filters)

        query_kwargs: dict[str, Any] = {
            "query_embeddings": [embedding],
            "n_results": limit,
            "include": _QUERY_INCLUDE,
        }
        if where is not None:
            query_kwargs["where"] = where

        try:
            collection = await self._registry.resolve_handle(set_id)
            results = await collection.query(**query_kwargs)
        except Exception as exc:
            raise SearchError(f"Failed to search '{set_id}'", str(exc)) from exc

        ids = _first_row(results, "ids")
        documents = _first_row(results, "documents")
        metadatas = _first_row(results, "metadatas")
        distances = _first_row(results, "distances")

        hits: list[SearchResult] = []
        for index, chunk_id in enumerate(ids):
            distance = _at(distances, index)
            hits.append(
                SearchResult(
                    id=str(chunk_id),
                    content=_at(documents, index) or "",
                    metadata=decode_metadata(_at(metadatas, index)),
                    similarity=1 - (distance or 0),
                )
            )
        return hits
