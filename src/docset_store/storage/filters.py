"""Metadata filter conditions and their translation to ChromaDB ``where`` clauses."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

type Scalar = str | int | float | bool


def _check_scalar(value: Any) -> None:
    if not isinstance(value, (str, int, float, bool)):
        raise ValueError(
            f"Filter values must be str, int, float or bool, got {type(value).__name__}."
        )


@dataclass(frozen=True)
class Equals:
    """Match records whose field equals ``value``."""

    value: Scalar

    def __post_init__(self) -> None:
        _check_scalar(self.value)


@dataclass(frozen=True, init=False)
class OneOf:
    """Match records whose field is any of ``values``."""

    values: tuple[Scalar, ...]

    def __init__(self, values: Sequence[Scalar]) -> None:
        object.__setattr__(self, "values", tuple(values))
        if not self.values:
            raise ValueError("OneOf requires at least one value.")
        for value in self.values:
            _check_scalar(value)


type FilterCondition = Equals | OneOf


def translate_filters(
    filters: Mapping[str, FilterCondition] | None,
) -> dict[str, Any] | None:
    """Translate field conditions into a ChromaDB ``where`` clause.

    Returns None for an empty mapping so the query runs unfiltered. ChromaDB
    accepts exactly one top-level operator, so more than one condition is
    wrapped in ``$and``.
    """
    if not filters:
        return None

    clauses: list[dict[str, Any]] = []
    for field_name, condition in filters.items():
        if isinstance(condition, Equals):
            clauses.append({field_name: {"$eq": condition.value}})
        elif isinstance(condition, OneOf):
            clauses.append({field_name: {"$in": list(condition.values)}})
        else:
            raise TypeError(
                f"Filter for '{field_name}' must be Equals or OneOf, "
                f"got {type(condition).__name__}."
            )

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def parse_filters(raw: Any) -> dict[str, FilterCondition]:
    """Build conditions from untyped input such as decoded JSON.

    ``raw`` must be a mapping. Lists become ``OneOf`` and scalars become
    ``Equals``.
    """
    if not isinstance(raw, Mapping):
        raise ValueError(
            f"Filters must be an object of field conditions, got {type(raw).__name__}."
        )
    conditions: dict[str, FilterCondition] = {}
    for field_name, value in raw.items():
        if isinstance(value, (list, tuple)):
            conditions[field_name] = OneOf(value)
        elif isinstance(value, (str, int, float, bool)):
            conditions[field_name] = Equals(value)
        else:
            raise ValueError(
                f"Unsupported filter value for '{field_name}': {value!r}"
            )
    return conditions
