"""Paginated listing of the logical documents in a set."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from docset_store.storage.base import ListedDocument
from docset_store.storage.errors import ListDocumentsError
from docset_store.storage.registry import DocumentSetRegistry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500


def _size_bytes(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            return 0
    return 0


def _to_listed_document(document_id: str, metadata: Mapping[str, Any]) -> ListedDocument:
    created_at = metadata.get("created_at")
    return ListedDocument(
        id=document_id,
        source_file=str(metadata.get("source_file") or "unknown"),
        mime_type=str(metadata.get("mime_type") or "text/plain"),
        size_bytes=_size_bytes(metadata.get("size_bytes")),
        created_at=(
            str(created_at)
            if created_at is not None
            else datetime.now(timezone.utc).isoformat()
        ),
    )


class PaginatedLister:
    """Walks every chunk in a set and groups chunks into logical documents."""

    def __init__(
        self,
        registry: DocumentSetRegistry,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("Page size must be >= 1.")
        self._registry = registry
        self._page_size = page_size

    async def list_documents(self, set_id: str) -> list[ListedDocument]:
        """Return one entry per distinct ``document_id`` in the set.

        The first chunk seen for a document supplies its fields; chunk order
        is not assumed to follow ``chunk_index``. Chunks without a
        ``document_id`` are skipped. Entries keep first-appearance order.

        Raises:
            ListDocumentsError: If any backend call fails. No partial result
                is returned.
        """
        documents: dict[str, ListedDocument] = {}
        try:
            collection = await self._registry.resolve_handle(set_id)
            total = await collection.count()
            if total == 0:
                return []

            for offset in range(0, total, self._page_size):
                page = await collection.get(
                    limit=self._page_size,
                    offset=offset,
                    include=["metadatas"],
                )
                metadatas = page.get("metadatas") or []
                logger.debug(
                    "Fetched %d records at offset %d from set '%s'",
                    len(metadatas),
                    offset,
                    set_id,
                )
                for metadata in metadatas:
                    if not metadata:
                        continue
                    raw_id = metadata.get("document_id")
                    document_id = "" if raw_id is None else str(raw_id)
                    if not document_id or document_id in documents:
                        continue
                    documents[document_id] = _to_listed_document(
                        document_id, metadata
                    )
        except Exception as exc:
            raise ListDocumentsError(
                f"Failed to list documents in '{set_id}'", str(exc)
            ) from exc

        return list(documents.values())
