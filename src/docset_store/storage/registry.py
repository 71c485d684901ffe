"""Document-set lifecycle and the local collection handle cache."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable

import anyio

from docset_store.storage.backend import BackendCollection, VectorBackend
from docset_store.storage.base import DocumentSet
from docset_store.storage.errors import ListError, SetCreationError, SetDeletionError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_created_at(value: Any) -> datetime:
    """Parse a stored ISO-8601 timestamp, falling back to now."""
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return _now()


def _error_detail(exc: Exception) -> str:
    """Return the message of the first underlying error in a task group failure."""
    while isinstance(exc, ExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return str(exc)


def _to_document_set(collection: BackendCollection, count: int) -> DocumentSet:
    metadata = collection.metadata or {}
    return DocumentSet(
        id=collection.name,
        name=collection.name,
        description=str(metadata.get("description") or ""),
        created_at=_parse_created_at(metadata.get("created_at")),
        document_count=count,
    )


class HandleCache:
    """Maps set names to live collection handles.

    Unbounded unless ``max_size`` is given, in which case the least recently
    used handle is dropped first. Entries can always be fetched again from
    the backend.
    """

    def __init__(self, max_size: int | None = None) -> None:
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._max_size = max_size
        self._handles: OrderedDict[str, BackendCollection] = OrderedDict()

    def get(self, name: str) -> BackendCollection | None:
        handle = self._handles.get(name)
        if handle is not None:
            self._handles.move_to_end(name)
        return handle

    def put(self, name: str, handle: BackendCollection) -> None:
        self._handles[name] = handle
        self._handles.move_to_end(name)
        if self._max_size is not None:
            while len(self._handles) > self._max_size:
                evicted, _ = self._handles.popitem(last=False)
                logger.debug("Evicted cached handle for set '%s'", evicted)

    def evict(self, name: str) -> None:
        self._handles.pop(name, None)

    def clear(self) -> None:
        self._handles.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._handles

    def __len__(self) -> int:
        return len(self._handles)


class DocumentSetRegistry:
    """Create, read, enumerate and delete document sets."""

    def __init__(
        self,
        backend: VectorBackend,
        cache: HandleCache | None = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        """Initialize the registry.

        Args:
            backend: Connected backend client.
            cache: Handle cache to populate; a new unbounded cache by default.
            clock: Source of creation timestamps.
        """
        self._backend = backend
        self._cache = cache if cache is not None else HandleCache()
        self._clock = clock

    @property
    def cache(self) -> HandleCache:
        return self._cache

    async def create_document_set(
        self, name: str, description: str | None = None
    ) -> DocumentSet:
        """Create a collection for the set and cache its handle.

        Raises:
            SetCreationError: If the set already exists or the backend fails.
        """
        created_at = self._clock()
        try:
            collection = await self._backend.create_collection(
                name=name,
                metadata={
                    "description": description or "",
                    "created_at": created_at.isoformat(),
                },
            )
        except Exception as exc:
            raise SetCreationError(
                f"Failed to create document set '{name}'", str(exc)
            ) from exc

        self._cache.put(name, collection)
        logger.info("Created document set '%s'", name)
        return DocumentSet(
            id=name,
            name=name,
            description=description or "",
            created_at=created_at,
            document_count=0,
        )

    async def get_document_set(self, set_id: str) -> DocumentSet | None:
        """Return the set with its current record count, or None."""
        try:
            collection = await self._backend.get_collection(name=set_id)
            count = await collection.count()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Document set '%s' unavailable: %s", set_id, exc)
            return None
        return _to_document_set(collection, count)

    async def list_document_sets(self) -> list[DocumentSet]:
        """Return all sets in backend enumeration order.

        Raises:
            ListError: If enumeration or any count fails.
        """
        try:
            entries = await self._backend.list_collections()
            collections: list[BackendCollection] = []
            for entry in entries:
                if isinstance(entry, str):
                    # Older ChromaDB releases enumerate bare names.
                    entry = await self._backend.get_collection(name=entry)
                collections.append(entry)

            counts = [0] * len(collections)

            async def _count(index: int, collection: BackendCollection) -> None:
                counts[index] = await collection.count()

            async with anyio.create_task_group() as task_group:
                for index, collection in enumerate(collections):
                    task_group.start_soon(_count, index, collection)
        except Exception as exc:
            raise ListError("Failed to list document sets", _error_detail(exc)) from exc

        return [
            _to_document_set(collection, count)
            for collection, count in zip(collections, counts)
        ]

    async def delete_document_set(self, set_id: str) -> None:
        """Delete the set's collection and drop its cached handle.

        Raises:
            SetDeletionError: If the set does not exist or the backend fails.
        """
        try:
            await self._backend.delete_collection(name=set_id)
        except Exception as exc:
            raise SetDeletionError(
                f"Failed to delete document set '{set_id}'", str(exc)
            ) from exc
        finally:
            self._cache.evict(set_id)
        logger.info("Deleted document set '%s'", set_id)

    async def resolve_handle(self, set_id: str) -> BackendCollection:
        """Return the cached handle for a set, fetching it on first use."""
        handle = self._cache.get(set_id)
        if handle is None:
            handle = await self._backend.get_collection(name=set_id)
            self._cache.put(set_id, handle)
        return handle
