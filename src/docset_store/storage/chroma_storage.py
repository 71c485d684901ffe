"""ChromaDB-backed document-set storage."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import TracebackType

from chromadb import AsyncHttpClient

from docset_store.config import Settings
from docset_store.storage.backend import VectorBackend
from docset_store.storage.base import (
    ChunkRecord,
    DocumentSet,
    ListedDocument,
    SearchResult,
    StorageService,
)
from docset_store.storage.errors import DeleteDocumentError, StorageConnectionError
from docset_store.storage.filters import FilterCondition
from docset_store.storage.ingest import BatchIngestor
from docset_store.storage.listing import PaginatedLister
from docset_store.storage.registry import DocumentSetRegistry, HandleCache
from docset_store.storage.search import SearchResultAssembler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StorageComponents:
    """Collaborators bound to one connected client."""

    client: VectorBackend
    registry: DocumentSetRegistry
    ingestor: BatchIngestor
    lister: PaginatedLister
    searcher: SearchResultAssembler


class ChromaStorage(StorageService):
    """Document-set storage on top of a ChromaDB server."""

    def __init__(self, settings: Settings, client: VectorBackend | None = None) -> None:
        """Initialize with application settings.

        Args:
            settings: Application settings with ChromaDB connection info.
            client: Already connected client. When omitted, one is opened on
                context entry. An injected client is reused after cleanup.
        """
        self._settings = settings
        self._cache = HandleCache(max_size=settings.handle_cache_size)
        self._injected_client = client
        self._components: StorageComponents | None = None
        if client is not None:
            self._components = self._build_components(client)

    async def __aenter__(self) -> "ChromaStorage":
        """Connect to ChromaDB on context entry."""
        if self._components is not None:
            return self
        if self._injected_client is not None:
            self._components = self._build_components(self._injected_client)
            return self

        headers: dict[str, str] = {}
        if self._settings.chroma_auth_token:
            headers["Authorization"] = f"Bearer {self._settings.chroma_auth_token}"
        try:
            client = await AsyncHttpClient(
                host=self._settings.chroma_host,
                port=self._settings.chroma_port,
                ssl=self._settings.chroma_ssl,
                headers=headers or None,
                tenant=self._settings.chroma_tenant,
                database=self._settings.chroma_database,
            )
        except Exception as exc:
            raise StorageConnectionError(
                f"Failed to connect to ChromaDB at "
                f"{self._settings.chroma_host}:{self._settings.chroma_port}",
                str(exc),
            ) from exc
        self._components = self._build_components(client)
        logger.debug(
            "Connected to ChromaDB at %s:%d",
            self._settings.chroma_host,
            self._settings.chroma_port,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Release the client on context exit."""
        await self.cleanup()

    def _build_components(self, client: VectorBackend) -> StorageComponents:
        registry = DocumentSetRegistry(client, cache=self._cache)
        return StorageComponents(
            client=client,
            registry=registry,
            ingestor=BatchIngestor(
                registry, batch_size=self._settings.ingest_batch_size
            ),
            lister=PaginatedLister(registry, page_size=self._settings.list_page_size),
            searcher=SearchResultAssembler(registry),
        )

    @property
    def _active(self) -> StorageComponents:
        """Return the bound components, raising if not connected."""
        if self._components is None:
            raise RuntimeError(
                "Storage is not connected. Use 'async with ChromaStorage(...)' to connect."
            )
        return self._components

    async def health_check(self) -> bool:
        """Probe the ChromaDB heartbeat endpoint."""
        try:
            await self._active.client.heartbeat()
        except Exception as exc:  # noqa: BLE001
            logger.warning("ChromaDB health check failed: %s", exc)
            return False
        return True

    async def create_document_set(
        self, name: str, description: str | None = None
    ) -> DocumentSet:
        return await self._active.registry.create_document_set(name, description)

    async def get_document_set(self, set_id: str) -> DocumentSet | None:
        return await self._active.registry.get_document_set(set_id)

    async def list_document_sets(self) -> list[DocumentSet]:
        return await self._active.registry.list_document_sets()

    async def list_documents(self, set_id: str) -> list[ListedDocument]:
        return await self._active.lister.list_documents(set_id)

    async def add_documents(self, set_id: str, chunks: Sequence[ChunkRecord]) -> None:
        await self._active.ingestor.add_documents(set_id, chunks)

    async def search_documents(
        self,
        set_id: str,
        embedding: list[float],
        limit: int = 10,
        filters: Mapping[str, FilterCondition] | None = None,
    ) -> list[SearchResult]:
        return await self._active.searcher.search_documents(
            set_id, embedding, limit, filters
        )

    async def delete_document(self, set_id: str, chunk_id: str) -> None:
        """Delete the single chunk record with id ``chunk_id``.

        A logical document made of several chunks needs one call per chunk.
        """
        registry = self._active.registry
        try:
            collection = await registry.resolve_handle(set_id)
            await collection.delete(ids=[chunk_id])
        except Exception as exc:
            raise DeleteDocumentError(
                f"Failed to delete chunk '{chunk_id}' from '{set_id}'", str(exc)
            ) from exc
        logger.debug("Deleted chunk '%s' from set '%s'", chunk_id, set_id)

    async def delete_document_set(self, set_id: str) -> None:
        await self._active.registry.delete_document_set(set_id)

    async def cleanup(self) -> None:
        """Drop cached handles and the client reference.

        An injected client is bound again on the next context entry.
        """
        self._cache.clear()
        self._components = None
