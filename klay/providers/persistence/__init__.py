"""Repository implementations: dict-backed and aiosqlite-backed."""

from klay.providers.persistence.memory_repositories import (
    InMemoryExtractionJobRepository,
    InMemoryLineageRepository,
    InMemoryProcessingProfileRepository,
    InMemoryProjectionRepository,
    InMemorySemanticUnitRepository,
    InMemorySourceRepository,
)
from klay.providers.persistence.sqlite_repositories import (
    SQLiteExtractionJobRepository,
    SQLiteLineageRepository,
    SQLiteProcessingProfileRepository,
    SQLiteProjectionRepository,
    SQLiteSemanticUnitRepository,
    SQLiteSourceRepository,
    initialize_schema,
)

__all__ = [
    "InMemoryExtractionJobRepository",
    "InMemoryLineageRepository",
    "InMemoryProcessingProfileRepository",
    "InMemoryProjectionRepository",
    "InMemorySemanticUnitRepository",
    "InMemorySourceRepository",
    "SQLiteExtractionJobRepository",
    "SQLiteLineageRepository",
    "SQLiteProcessingProfileRepository",
    "SQLiteProjectionRepository",
    "SQLiteSemanticUnitRepository",
    "SQLiteSourceRepository",
    "initialize_schema",
]
