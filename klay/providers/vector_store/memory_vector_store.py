"""Process-local vector store backed by a dict and numpy.

Entries live for the lifetime of the process.  Search is an exact
brute-force cosine scan, vectorised with numpy over the filtered entries.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import structlog

from klay.interfaces.vector_store_provider import IVectorStoreProvider
from klay.models.vector import SearchHit, VectorEntry
from klay.providers.vector_store.base import (
    check_entry_dimensions,
    check_query_dimension,
    matches_filters,
)
from klay.utils.concurrency import KeyedLocks
from klay.utils.similarity import cosine_scores

logger = structlog.get_logger(logger_name=__name__)


class InMemoryVectorStore(IVectorStoreProvider):
    def __init__(self, dimension: int) -> None:
        self._dimension = dimension
        self._entries: dict[str, VectorEntry] = {}
        self._locks = KeyedLocks()

    async def upsert(self, entries: list[VectorEntry]) -> int:
        if not entries:
            return 0
        check_entry_dimensions(entries, self._dimension, self.get_provider_name())
        for owner_id, owned in _group_by_owner(entries).items():
            async with self._locks.hold(owner_id):
                for entry in owned:
                    self._entries[entry.id] = entry
        logger.debug("vector_store_upsert", provider="memory", count=len(entries))
        return len(entries)

    async def delete(self, ids: list[str]) -> int:
        removed = 0
        for entry_id in ids:
            if self._entries.pop(entry_id, None) is not None:
                removed += 1
        return removed

    async def delete_by_owner(self, owner_id: str) -> int:
        async with self._locks.hold(owner_id):
            return self._drop_owner(owner_id)

    async def replace_owner(self, owner_id: str, entries: list[VectorEntry]) -> int:
        check_entry_dimensions(entries, self._dimension, self.get_provider_name())
        async with self._locks.hold(owner_id):
            removed = self._drop_owner(owner_id)
            for entry in entries:
                self._entries[entry.id] = entry
        logger.debug(
            "vector_store_replace_owner",
            provider="memory",
            owner_id=owner_id,
            removed=removed,
            written=len(entries),
        )
        return len(entries)

    def _drop_owner(self, owner_id: str) -> int:
        doomed = [eid for eid, entry in self._entries.items() if entry.owner_id == owner_id]
        for entry_id in doomed:
            del self._entries[entry_id]
        return len(doomed)

    async def search(
        self,
        query: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        if not self._entries or top_k <= 0:
            return []
        check_query_dimension(query, self._dimension, self.get_provider_name())

        candidates = [e for e in self._entries.values() if matches_filters(e.metadata, filters)]
        if not candidates:
            return []

        matrix = np.asarray([e.vector for e in candidates], dtype=np.float64)
        scores = cosine_scores(query, matrix)
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [SearchHit(entry=candidates[i], score=float(scores[i])) for i in order]

    async def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            return len(self._entries)
        return sum(1 for e in self._entries.values() if e.owner_id == owner_id)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "memory"


def _group_by_owner(entries: list[VectorEntry]) -> dict[str, list[VectorEntry]]:
    grouped: dict[str, list[VectorEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.owner_id, []).append(entry)
    return grouped
