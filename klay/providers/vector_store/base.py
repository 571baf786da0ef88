"""Helpers shared by the vector store backends."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from klay.models.vector import VectorEntry
from klay.utils.errors import DimensionMismatchError


def matches_filters(metadata: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Exact-match AND over *filters*; an empty or missing filter matches everything."""
    if not filters:
        return True
    return all(key in metadata and metadata[key] == value for key, value in filters.items())


def check_entry_dimensions(
    entries: Iterable[VectorEntry], dimension: int, provider_name: str
) -> None:
    for entry in entries:
        if len(entry.vector) != dimension:
            raise DimensionMismatchError(
                expected=dimension, actual=len(entry.vector), provider_name=provider_name
            )


def check_query_dimension(query: list[float], dimension: int, provider_name: str) -> None:
    if len(query) != dimension:
        raise DimensionMismatchError(
            expected=dimension, actual=len(query), provider_name=provider_name
        )
