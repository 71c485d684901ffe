from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import pytest

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional in environments without dev deps
    load_dotenv = None


def pytest_configure() -> None:
    """Load .env for local runs without overriding existing env vars."""
    if load_dotenv is None:
        return

    repo_root = Path(__file__).resolve().parents[1]
    load_dotenv(repo_root / ".env", override=False)


def _matches(metadata: dict[str, Any], where: dict[str, Any] | None) -> bool:
    if not where:
        return True
    if "$and" in where:
        return all(_matches(metadata, clause) for clause in where["$and"])
    (field, condition), = where.items()
    value = metadata.get(field)
    if "$eq" in condition:
        return value == condition["$eq"]
    if "$in" in condition:
        return value in condition["$in"]
    raise ValueError(f"Unsupported operator in {condition}")


class FakeCollection:
    """In-memory stand-in for a ChromaDB async collection."""

    def __init__(self, name: str, metadata: dict[str, Any] | None = None) -> None:
        self.name = name
        self.metadata = metadata
        self.records: dict[str, tuple[list[float], str, dict[str, Any]]] = {}
        self.add_calls: list[dict[str, Any]] = []
        self.get_calls: list[dict[str, Any]] = []
        self.query_calls: list[dict[str, Any]] = []
        self.delete_calls: list[list[str]] = []
        self.fail_add_on_call: int | None = None
        self.fail_get: bool = False
        self.query_response: dict[str, Any] | None = None

    async def count(self) -> int:
        return len(self.records)

    async def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        call_index = len(self.add_calls)
        self.add_calls.append(
            {
                "ids": ids,
                "embeddings": embeddings,
                "documents": documents,
                "metadatas": metadatas,
            }
        )
        if self.fail_add_on_call == call_index:
            raise RuntimeError("add rejected")
        for metadata in metadatas:
            for key, value in metadata.items():
                if not isinstance(value, (str, int, float, bool)):
                    raise ValueError(f"Invalid metadata value for {key}: {value!r}")
        for chunk_id, embedding, document, metadata in zip(
            ids, embeddings, documents, metadatas
        ):
            self.records[chunk_id] = (list(embedding), document, dict(metadata))

    async def get(
        self,
        limit: int | None = None,
        offset: int | None = None,
        include: list[str] | None = None,
    ) -> dict[str, Any]:
        self.get_calls.append({"limit": limit, "offset": offset, "include": include})
        if self.fail_get:
            raise RuntimeError("get failed")
        start = offset or 0
        end = start + limit if limit is not None else None
        items = list(self.records.items())[start:end]
        return {
            "ids": [chunk_id for chunk_id, _ in items],
            "metadatas": [dict(record[2]) for _, record in items],
        }

    async def query(
        self,
        query_embeddings: list[list[float]],
        n_results: int = 10,
        where: dict[str, Any] | None = None,
        include: list[str] | None = None,
    ) -> dict[str, Any]:
        self.query_calls.append(
            {
                "query_embeddings": query_embeddings,
                "n_results": n_results,
                "where": where,
                "include": include,
            }
        )
        if self.query_response is not None:
            return self.query_response

        query = query_embeddings[0]
        scored = [
            (math.dist(query, embedding), chunk_id, document, metadata)
            for chunk_id, (embedding, document, metadata) in self.records.items()
            if _matches(metadata, where)
        ]
        scored.sort(key=lambda item: item[0])
        scored = scored[:n_results]
        return {
            "ids": [[item[1] for item in scored]],
            "documents": [[item[2] for item in scored]],
            "metadatas": [[dict(item[3]) for item in scored]],
            "distances": [[item[0] for item in scored]],
        }

    async def delete(self, ids: list[str]) -> None:
        self.delete_calls.append(list(ids))
        for chunk_id in ids:
            self.records.pop(chunk_id, None)


class FakeBackend:
    """In-memory stand-in for a ChromaDB async client."""

    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}
        self.alive = True
        self.get_collection_calls = 0
        self.fail_list = False

    def new_collection(
        self, name: str, metadata: dict[str, Any] | None = None
    ) -> FakeCollection:
        collection = FakeCollection(name, metadata)
        self.collections[name] = collection
        return collection

    async def heartbeat(self) -> int:
        if not self.alive:
            raise ConnectionError("server unreachable")
        return 1

    async def create_collection(
        self, name: str, metadata: dict[str, Any] | None = None
    ) -> FakeCollection:
        if name in self.collections:
            raise ValueError(f"Collection {name} already exists")
        return self.new_collection(name, metadata)

    async def get_collection(self, name: str) -> FakeCollection:
        self.get_collection_calls += 1
        if name not in self.collections:
            raise ValueError(f"Collection {name} does not exist.")
        return self.collections[name]

    async def list_collections(self) -> list[FakeCollection]:
        if self.fail_list:
            raise RuntimeError("list failed")
        return list(self.collections.values())

    async def delete_collection(self, name: str) -> None:
        if name not in self.collections:
            raise ValueError(f"Collection {name} does not exist.")
        del self.collections[name]


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Empty in-memory backend."""
    return FakeBackend()
