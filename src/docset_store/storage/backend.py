"""Operations the storage layer needs from the vector-search backend.

The shapes follow ``chromadb``'s async client: collections are addressed by
name, ``get`` and ``query`` return plain dicts of parallel lists, and
metadata values must be scalars.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class BackendCollection(Protocol):
    """A single collection of flat records."""

    name: str
    metadata: Mapping[str, Any] | None

    async def count(self) -> int: ...

    async def add(
        self,
        ids: list[str],
        embeddings: list[Sequence[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None: ...

    async def get(
        self,
        limit: int | None = None,
        offset: int | None = None,
        include: list[str] | None = None,
    ) -> Mapping[str, Any]: ...

    async def query(
        self,
        query_embeddings: list[Sequence[float]],
        n_results: int = 10,
        where: dict[str, Any] | None = None,
        include: list[str] | None = None,
    ) -> Mapping[str, Any]: ...

    async def delete(self, ids: list[str]) -> None: ...


class VectorBackend(Protocol):
    """Client-level operations: liveness and collection lifecycle."""

    async def heartbeat(self) -> int: ...

    async def create_collection(
        self, name: str, metadata: dict[str, Any] | None = None
    ) -> BackendCollection: ...

    async def get_collection(self, name: str) -> BackendCollection: ...

    async def list_collections(self) -> Sequence[BackendCollection | str]: ...

    async def delete_collection(self, name: str) -> None: ...
