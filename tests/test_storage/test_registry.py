"""Unit tests for DocumentSetRegistry and HandleCache."""

from datetime import datetime, timezone
from typing import Any

import pytest

from docset_store.storage.errors import ListError, SetCreationError, SetDeletionError
from docset_store.storage.registry import DocumentSetRegistry, HandleCache

_FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _registry(backend: Any, cache: HandleCache | None = None) -> DocumentSetRegistry:
    return DocumentSetRegistry(backend, cache=cache, clock=lambda: _FIXED_NOW)


# --- HandleCache ---


def test_cache_is_unbounded_by_default() -> None:
    cache = HandleCache()
    for index in range(50):
        cache.put(f"set-{index}", object())  # type: ignore[arg-type]

    assert len(cache) == 50


def test_cache_evicts_least_recently_used_when_bounded() -> None:
    cache = HandleCache(max_size=2)
    first, second, third = object(), object(), object()
    cache.put("a", first)  # type: ignore[arg-type]
    cache.put("b", second)  # type: ignore[arg-type]
    cache.get("a")
    cache.put("c", third)  # type: ignore[arg-type]

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_cache_rejects_invalid_size() -> None:
    with pytest.raises(ValueError, match="max_size"):
        HandleCache(max_size=0)


# --- create_document_set() ---


@pytest.mark.anyio
async def test_create_document_set_stores_metadata(fake_backend: Any) -> None:
    """create_document_set() creates the collection and caches its handle."""
    registry = _registry(fake_backend)

    document_set = await registry.create_document_set("manuals", "Product manuals")

    assert document_set.id == "manuals"
    assert document_set.name == "manuals"
    assert document_set.description == "Product manuals"
    assert document_set.created_at == _FIXED_NOW
    assert document_set.document_count == 0
    assert fake_backend.collections["manuals"].metadata == {
        "description": "Product manuals",
        "created_at": _FIXED_NOW.isoformat(),
    }
    assert "manuals" in registry.cache


@pytest.mark.anyio
async def test_create_document_set_defaults_description(fake_backend: Any) -> None:
    registry = _registry(fake_backend)

    document_set = await registry.create_document_set("notes")

    assert document_set.description == ""
    assert fake_backend.collections["notes"].metadata["description"] == ""


@pytest.mark.anyio
async def test_create_existing_set_raises(fake_backend: Any) -> None:
    """Creating a set whose name is taken fails with SetCreationError."""
    fake_backend.new_collection("manuals")
    registry = _registry(fake_backend)

    with pytest.raises(SetCreationError, match="already exists") as exc_info:
        await registry.create_document_set("manuals")

    assert "already exists" in (exc_info.value.detail or "")
    assert "manuals" not in registry.cache


# --- get_document_set() ---


@pytest.mark.anyio
async def test_get_document_set_reads_count_and_metadata(fake_backend: Any) -> None:
    collection = fake_backend.new_collection(
        "manuals",
        {"description": "Docs", "created_at": "2024-01-02T03:04:05+00:00"},
    )
    collection.records["c1"] = ([0.0], "text", {})
    collection.records["c2"] = ([0.0], "text", {})
    registry = _registry(fake_backend)

    document_set = await registry.get_document_set("manuals")

    assert document_set is not None
    assert document_set.document_count == 2
    assert document_set.description == "Docs"
    assert document_set.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.mark.anyio
async def test_get_document_set_missing_returns_none(fake_backend: Any) -> None:
    registry = _registry(fake_backend)

    assert await registry.get_document_set("missing") is None


@pytest.mark.anyio
async def test_get_document_set_tolerates_bad_timestamp(fake_backend: Any) -> None:
    fake_backend.new_collection("manuals", {"created_at": "yesterday"})
    registry = _registry(fake_backend)

    document_set = await registry.get_document_set("manuals")

    assert document_set is not None
    assert document_set.created_at.tzinfo is not None


# --- list_document_sets() ---


@pytest.mark.anyio
async def test_list_document_sets_counts_each_set(fake_backend: Any) -> None:
    first = fake_backend.new_collection("a", {"description": "first"})
    fake_backend.new_collection("b")
    first.records["c1"] = ([0.0], "text", {})
    registry = _registry(fake_backend)

    document_sets = await registry.list_document_sets()

    assert [item.name for item in document_sets] == ["a", "b"]
    assert [item.document_count for item in document_sets] == [1, 0]
    assert document_sets[0].description == "first"


@pytest.mark.anyio
async def test_list_document_sets_resolves_bare_names(fake_backend: Any) -> None:
    """Enumerations that return names are resolved to collections."""
    fake_backend.new_collection("a")

    async def _list_names() -> list[str]:
        return ["a"]

    fake_backend.list_collections = _list_names
    registry = _registry(fake_backend)

    document_sets = await registry.list_document_sets()

    assert [item.name for item in document_sets] == ["a"]


@pytest.mark.anyio
async def test_list_document_sets_failure_raises(fake_backend: Any) -> None:
    fake_backend.fail_list = True
    registry = _registry(fake_backend)

    with pytest.raises(ListError, match="list failed"):
        await registry.list_document_sets()


@pytest.mark.anyio
async def test_list_document_sets_count_failure_raises(fake_backend: Any) -> None:
    collection = fake_backend.new_collection("a")

    async def _broken_count() -> int:
        raise RuntimeError("count failed")

    collection.count = _broken_count
    registry = _registry(fake_backend)

    with pytest.raises(ListError, match="count failed"):
        await registry.list_document_sets()


# --- delete_document_set() / resolve_handle() ---


@pytest.mark.anyio
async def test_delete_document_set_evicts_handle(fake_backend: Any) -> None:
    registry = _registry(fake_backend)
    await registry.create_document_set("manuals")

    await registry.delete_document_set("manuals")

    assert "manuals" not in fake_backend.collections
    assert "manuals" not in registry.cache
    assert await registry.get_document_set("manuals") is None


@pytest.mark.anyio
async def test_delete_missing_set_raises(fake_backend: Any) -> None:
    """Deleting a nonexistent set is an error, not a no-op."""
    registry = _registry(fake_backend)

    with pytest.raises(SetDeletionError, match="does not exist"):
        await registry.delete_document_set("missing")


@pytest.mark.anyio
async def test_resolve_handle_fetches_once(fake_backend: Any) -> None:
    collection = fake_backend.new_collection("manuals")
    registry = _registry(fake_backend)

    first = await registry.resolve_handle("manuals")
    second = await registry.resolve_handle("manuals")

    assert first is collection
    assert second is collection
    assert fake_backend.get_collection_calls == 1


@pytest.mark.anyio
async def test_resolve_handle_missing_set_raises(fake_backend: Any) -> None:
    registry = _registry(fake_backend)

    with pytest.raises(ValueError, match="does not exist"):
        await registry.resolve_handle("missing")
