"""Abstract persistence ports for the domain aggregates.

Each repository stores one aggregate type keyed by its id.  ``save`` is an
upsert: the frozen models are replaced wholesale on every state
transition.  Implementations: dict-backed (process lifetime) in
:mod:`klay.providers.persistence.memory_repositories` and aiosqlite-backed
in :mod:`klay.providers.persistence.sqlite_repositories`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from klay.models.lineage import Lineage
from klay.models.profile import ProcessingProfile
from klay.models.projection import Projection
from klay.models.semantic_unit import SemanticUnit
from klay.models.source import ExtractionJob, Source

_M = TypeVar("_M")


class IRepository(ABC, Generic[_M]):
    """Keyed upsert/get contract shared by every aggregate repository."""

    @abstractmethod
    async def save(self, item: _M) -> None:
        """Insert or replace *item* by its id."""

    @abstractmethod
    async def get(self, item_id: str) -> _M | None:
        """Return the stored item, or ``None`` when absent."""

    async def exists(self, item_id: str) -> bool:
        return await self.get(item_id) is not None


class IProjectionRepository(IRepository[Projection]):
    @abstractmethod
    async def find_by_semantic_unit(self, semantic_unit_id: str) -> list[Projection]:
        """Return every projection of a unit, oldest first."""


class ISemanticUnitRepository(IRepository[SemanticUnit]):
    @abstractmethod
    async def list_all(self) -> list[SemanticUnit]:
        """Return all units ordered by creation time."""


class ILineageRepository(IRepository[Lineage]):
    """Lineages are keyed by ``semantic_unit_id``."""


class ISourceRepository(IRepository[Source]):
    pass


class IExtractionJobRepository(IRepository[ExtractionJob]):
    @abstractmethod
    async def find_by_source(self, source_id: str) -> list[ExtractionJob]:
        """Return every extraction job run for a source, oldest first."""


class IProcessingProfileRepository(IRepository[ProcessingProfile]):
    pass
