"""Exceptions raised by document-set storage operations."""


class StorageError(Exception):
    """Base class for failures reported by the storage backend.

    Attributes:
        detail: Message of the underlying backend error.
    """

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.detail = detail
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class StorageConnectionError(StorageError):
    """Raised when the ChromaDB client cannot be opened."""


class SetCreationError(StorageError):
    """Raised when a document set cannot be created."""


class ListError(StorageError):
    """Raised when document sets cannot be enumerated."""


class SetDeletionError(StorageError):
    """Raised when a document set cannot be deleted."""


class IngestError(StorageError):
    """Raised when chunk ingestion stops at a failed batch.

    Batches before ``batch_index`` have already been applied and are not
    rolled back. ``batch_index`` is None when the set could not be resolved.
    """

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        batch_index: int | None = None,
        applied_count: int = 0,
    ) -> None:
        super().__init__(message, detail)
        self.batch_index = batch_index
        self.applied_count = applied_count


class ListDocumentsError(StorageError):
    """Raised when the documents of a set cannot be listed."""


class SearchError(StorageError):
    """Raised when a similarity search fails."""


class DeleteDocumentError(StorageError):
    """Raised when a chunk record cannot be deleted."""
