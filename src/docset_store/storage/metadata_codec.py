"""Conversion between chunk metadata and the scalar-only records ChromaDB stores.

ChromaDB metadata values must be str, int, float or bool. List fields are
stored as comma-joined strings, so an element that itself contains a comma
comes back split in two. This is a known limitation of the stored format.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from docset_store.storage.base import DocumentMetadata

type ScalarMetadata = dict[str, str | int | float | bool]

LIST_DELIMITER = ","
LIST_FIELDS = ("keywords", "topic_tags", "code_languages", "entities")

_OPTIONAL_STRING_FIELDS = (
    "mime_type",
    "created_at",
    "section_heading",
    "summary",
)
_OPTIONAL_NUMBER_FIELDS = ("size_bytes", "page_number", "quality_score")
_OPTIONAL_LIST_FIELDS = ("topic_tags", "code_languages", "entities")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _required(value: Any, default: str) -> str | int | float | bool:
    if not value:
        return default
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _join_list(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return LIST_DELIMITER.join(str(item) for item in value)
    return str(value)


def _chunk_index(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def _document_id(value: Any) -> str | int | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _split_list(value: str) -> list[str]:
    parts = (part.strip() for part in value.split(LIST_DELIMITER))
    return [part for part in parts if part]


def encode_metadata(metadata: DocumentMetadata | Mapping[str, Any]) -> ScalarMetadata:
    """Flatten chunk metadata into a record ChromaDB accepts.

    Required fields are always present and fall back to their defaults;
    non-scalar values there are stringified. Optional fields are included
    only when set and of the expected type; mistyped values are dropped
    rather than coerced. ``document_id`` may be a string or an integer.
    """
    source = metadata.to_dict() if isinstance(metadata, DocumentMetadata) else metadata

    encoded: ScalarMetadata = {
        "source_file": _required(source.get("source_file"), ""),
        "document_type": _required(source.get("document_type"), "unknown"),
        "category": _required(source.get("category"), ""),
        "keywords": _join_list(source.get("keywords") or ""),
        "chunk_index": _chunk_index(source.get("chunk_index")),
    }

    document_id = _document_id(source.get("document_id"))
    if document_id is not None:
        encoded["document_id"] = document_id

    for name in _OPTIONAL_STRING_FIELDS:
        value = source.get(name)
        if isinstance(value, str) and value:
            encoded[name] = value

    for name in _OPTIONAL_NUMBER_FIELDS:
        value = source.get(name)
        if _is_number(value):
            encoded[name] = value

    for name in _OPTIONAL_LIST_FIELDS:
        value = source.get(name)
        if value:
            encoded[name] = _join_list(value)

    return encoded


def decode_metadata(stored: Mapping[str, Any] | None) -> dict[str, Any]:
    """Rebuild list fields from their stored strings.

    Every other field is passed through unchanged.
    """
    decoded = dict(stored or {})
    for name in LIST_FIELDS:
        value = decoded.get(name)
        if isinstance(value, str) and value:
            decoded[name] = _split_list(value)
    return decoded
