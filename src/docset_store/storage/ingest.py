"""Batched ingestion of chunk records."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from docset_store.storage.base import ChunkRecord
from docset_store.storage.errors import IngestError
from docset_store.storage.metadata_codec import encode_metadata
from docset_store.storage.registry import DocumentSetRegistry

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def iter_batches[T](items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("Batch size must be >= 1.")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BatchIngestor:
    """Adds chunk records to a set in fixed-size batches.

    Batches are applied in order and are not atomic as a group: when a batch
    fails, earlier batches stay stored and later ones are never sent.
    """

    def __init__(
        self,
        registry: DocumentSetRegistry,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("Batch size must be >= 1.")
        self._registry = registry
        self._batch_size = batch_size

    async def add_documents(self, set_id: str, chunks: Sequence[ChunkRecord]) -> None:
        """Store chunk records in the given set.

        Args:
            set_id: Target document set.
            chunks: Chunk records, applied in order. Ids are expected to be
                unique; re-adding an id is left to the backend.

        Raises:
            IngestError: On the first failed batch, carrying its index and the
                number of records already applied.
        """
        try:
            collection = await self._registry.resolve_handle(set_id)
        except Exception as exc:
            raise IngestError(
                f"Failed to add documents to '{set_id}'", str(exc)
            ) from exc

        applied = 0
        for batch_index, batch in enumerate(iter_batches(chunks, self._batch_size)):
            try:
                await collection.add(
                    ids=[chunk.id for chunk in batch],
                    embeddings=[chunk.embedding for chunk in batch],
                    documents=[chunk.content for chunk in batch],
                    metadatas=[encode_metadata(chunk.metadata) for chunk in batch],
                )
            except Exception as exc:
                logger.warning(
                    "Batch %d failed for set '%s' after %d records were stored",
                    batch_index,
                    set_id,
                    applied,
                )
                raise IngestError(
                    f"Failed to add documents to '{set_id}' at batch {batch_index}",
                    str(exc),
                    batch_index=batch_index,
                    applied_count=applied,
                ) from exc
            applied += len(batch)
            logger.debug(
                "Stored batch %d (%d records) in set '%s'",
                batch_index,
                len(batch),
                set_id,
            )

        logger.info("Added %d chunk records to set '%s'", applied, set_id)
