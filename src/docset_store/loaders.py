"""Loaders for chunk files used by the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from docset_store.storage.base import ChunkRecord


def _load_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load a JSONL file into a list of records."""
    records: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            records.append(json.loads(line))
    return records


def load_chunks_jsonl(path: Path) -> list[ChunkRecord]:
    """Load chunk records from JSONL.

    Each line holds ``id``, ``embedding`` and optionally ``content`` and
    ``metadata``.
    """
    chunks: list[ChunkRecord] = []
    for index, record in enumerate(_load_jsonl(path)):
        chunk_id = record.get("id")
        embedding = record.get("embedding")
        if not chunk_id or not isinstance(embedding, list):
            raise ValueError(
                f"Line {index + 1}: chunk records must include id and embedding."
            )
        metadata = record.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError(f"Line {index + 1}: metadata must be an object.")
        chunks.append(
            ChunkRecord(
                id=str(chunk_id),
                content=str(record.get("content") or ""),
                embedding=[float(value) for value in embedding],
                metadata=metadata,
            )
        )
    return chunks
