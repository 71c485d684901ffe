"""Storage interfaces and data models."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from docset_store.storage.filters import FilterCondition


@dataclass
class DocumentSet:
    """A named collection of chunk records.

    The backend has no separate numeric id, so ``id`` and ``name`` are the
    same value. ``document_count`` is the backend's record count at the time
    the set was read.
    """

    id: str
    name: str
    description: str
    created_at: datetime
    document_count: int


@dataclass
class DocumentMetadata:
    """Metadata attached to a single chunk record.

    Optional fields left as ``None`` are omitted when the record is stored.
    """

    source_file: str = ""
    document_type: str = "unknown"
    category: str = ""
    keywords: list[str] = field(default_factory=list)
    chunk_index: int = 0

    document_id: str | int | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    created_at: str | None = None
    page_number: int | None = None
    section_heading: str | None = None
    topic_tags: list[str] | None = None
    code_languages: list[str] | None = None
    entities: list[str] | None = None
    summary: str | None = None
    quality_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the populated fields as a plain mapping."""
        result: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is not None:
                result[item.name] = value
        return result


@dataclass
class ChunkRecord:
    """A chunk of a logical document, ready to be stored."""

    id: str
    content: str
    embedding: list[float]
    metadata: DocumentMetadata | Mapping[str, Any] = field(
        default_factory=DocumentMetadata
    )


@dataclass
class ListedDocument:
    """A logical document reconstructed from its first-seen chunk."""

    id: str
    source_file: str
    mime_type: str
    size_bytes: int
    created_at: str


@dataclass
class SearchResult:
    """A single chunk returned from similarity search."""

    id: str
    content: str
    metadata: dict[str, Any]
    similarity: float


class StorageService(ABC):
    """Abstract interface for document-set storage."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backend answers, False otherwise."""
        ...

    @abstractmethod
    async def create_document_set(
        self, name: str, description: str | None = None
    ) -> DocumentSet:
        """Create a new, empty document set."""
        ...

    @abstractmethod
    async def get_document_set(self, set_id: str) -> DocumentSet | None:
        """Return the document set, or None if it cannot be found."""
        ...

    @abstractmethod
    async def list_document_sets(self) -> list[DocumentSet]:
        """Return every document set known to the backend."""
        ...

    @abstractmethod
    async def list_documents(self, set_id: str) -> list[ListedDocument]:
        """Return the distinct logical documents stored in a set."""
        ...

    @abstractmethod
    async def add_documents(self, set_id: str, chunks: Sequence[ChunkRecord]) -> None:
        """Store chunk records in a set."""
        ...

    @abstractmethod
    async def search_documents(
        self,
        set_id: str,
        embedding: list[float],
        limit: int = 10,
        filters: Mapping[str, FilterCondition] | None = None,
    ) -> list[SearchResult]:
        """Search a set for the chunks nearest to an embedding.

        Args:
            set_id: Document set to search.
            embedding: Query embedding.
            limit: Maximum number of results.
            filters: Optional metadata conditions keyed by field name.

        Returns:
            Results ordered by rank, most similar first.
        """
        ...

    @abstractmethod
    async def delete_document(self, set_id: str, chunk_id: str) -> None:
        """Delete a single chunk record by id."""
        ...

    @abstractmethod
    async def delete_document_set(self, set_id: str) -> None:
        """Delete a document set together with all of its chunk records."""
        ...

    async def cleanup(self) -> None:
        """Release resources held by the storage service."""
        return None
