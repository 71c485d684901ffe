"""Document-set storage implementations and interfaces."""

from docset_store.storage.base import (
    ChunkRecord,
    DocumentMetadata,
    DocumentSet,
    ListedDocument,
    SearchResult,
    StorageService,
)
from docset_store.storage.chroma_storage import ChromaStorage
from docset_store.storage.errors import (
    DeleteDocumentError,
    IngestError,
    ListDocumentsError,
    ListError,
    SearchError,
    SetCreationError,
    SetDeletionError,
    StorageConnectionError,
    StorageError,
)
from docset_store.storage.filters import Equals, OneOf, parse_filters

__all__ = [
    "ChromaStorage",
    "ChunkRecord",
    "DeleteDocumentError",
    "DocumentMetadata",
    "DocumentSet",
    "Equals",
    "IngestError",
    "ListDocumentsError",
    "ListError",
    "ListedDocument",
    "OneOf",
    "SearchError",
    "SearchResult",
    "SetCreationError",
    "SetDeletionError",
    "StorageConnectionError",
    "StorageError",
    "StorageService",
    "parse_filters",
]
