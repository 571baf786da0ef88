"""Dict-backed repositories for the in-memory deployment and for tests.

Insertion order of the backing dict is the "oldest first" order returned
by the finder methods; re-saving an existing id keeps its position.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from klay.interfaces.repositories import (
    IExtractionJobRepository,
    ILineageRepository,
    IProcessingProfileRepository,
    IProjectionRepository,
    ISemanticUnitRepository,
    ISourceRepository,
)
from klay.models.lineage import Lineage
from klay.models.profile import ProcessingProfile
from klay.models.projection import Projection
from klay.models.semantic_unit import SemanticUnit
from klay.models.source import ExtractionJob, Source

_M = TypeVar("_M")


class _DictStore(Generic[_M]):
    def __init__(self) -> None:
        self._items: dict[str, _M] = {}

    def put(self, key: str, item: _M) -> None:
        self._items[key] = item

    def get(self, key: str) -> _M | None:
        return self._items.get(key)

    def values(self) -> list[_M]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)


class InMemoryProjectionRepository(IProjectionRepository):
    def __init__(self) -> None:
        self._store: _DictStore[Projection] = _DictStore()

    async def save(self, item: Projection) -> None:
        self._store.put(item.id, item)

    async def get(self, item_id: str) -> Projection | None:
        return self._store.get(item_id)

    async def find_by_semantic_unit(self, semantic_unit_id: str) -> list[Projection]:
        return [p for p in self._store.values() if p.semantic_unit_id == semantic_unit_id]


class InMemorySemanticUnitRepository(ISemanticUnitRepository):
    def __init__(self) -> None:
        self._store: _DictStore[SemanticUnit] = _DictStore()

    async def save(self, item: SemanticUnit) -> None:
        self._store.put(item.id, item)

    async def get(self, item_id: str) -> SemanticUnit | None:
        return self._store.get(item_id)

    async def list_all(self) -> list[SemanticUnit]:
        return self._store.values()


class InMemoryLineageRepository(ILineageRepository):
    def __init__(self) -> None:
        self._store: _DictStore[Lineage] = _DictStore()

    async def save(self, item: Lineage) -> None:
        self._store.put(item.semantic_unit_id, item)

    async def get(self, item_id: str) -> Lineage | None:
        return self._store.get(item_id)


class InMemorySourceRepository(ISourceRepository):
    def __init__(self) -> None:
        self._store: _DictStore[Source] = _DictStore()

    async def save(self, item: Source) -> None:
        self._store.put(item.id, item)

    async def get(self, item_id: str) -> Source | None:
        return self._store.get(item_id)


class InMemoryExtractionJobRepository(IExtractionJobRepository):
    def __init__(self) -> None:
        self._store: _DictStore[ExtractionJob] = _DictStore()

    async def save(self, item: ExtractionJob) -> None:
        self._store.put(item.id, item)

    async def get(self, item_id: str) -> ExtractionJob | None:
        return self._store.get(item_id)

    async def find_by_source(self, source_id: str) -> list[ExtractionJob]:
        return [j for j in self._store.values() if j.source_id == source_id]


class InMemoryProcessingProfileRepository(IProcessingProfileRepository):
    def __init__(self) -> None:
        self._store: _DictStore[ProcessingProfile] = _DictStore()

    async def save(self, item: ProcessingProfile) -> None:
        self._store.put(item.id, item)

    async def get(self, item_id: str) -> ProcessingProfile | None:
        return self._store.get(item_id)
