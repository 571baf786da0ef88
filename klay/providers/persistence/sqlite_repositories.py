"""SQLite-backed repositories for the embedded and remote deployments.

Every aggregate table has the same shape: the aggregate id, an optional
parent id used by finder methods, and the model serialised as JSON with
``model_dump_json``.  Rows are read back with ``model_validate_json``, so
the Pydantic model stays the single source of truth for validation.
Uses ``aiosqlite`` for async I/O, one connection per call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Generic, TypeVar

import aiosqlite
import structlog
from pydantic import BaseModel

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

logger = structlog.get_logger(logger_name=__name__)

_M = TypeVar("_M", bound=BaseModel)

TABLES: tuple[str, ...] = (
    "projections",
    "semantic_units",
    "lineages",
    "sources",
    "extraction_jobs",
    "processing_profiles",
)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    id         TEXT PRIMARY KEY,
    parent_id  TEXT,
    data       TEXT NOT NULL,
    saved_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDEX_SQL = "CREATE INDEX IF NOT EXISTS idx_{table}_parent ON {table}(parent_id);"

_UPSERT_SQL = """\
INSERT INTO {table} (id, parent_id, data)
VALUES (?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET parent_id = excluded.parent_id,
              data      = excluded.data,
              saved_at  = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""


async def initialize_schema(db_path: str | Path) -> None:
    """Create every aggregate table and index if they don't exist."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(str(path)) as db:
        for table in TABLES:
            await db.execute(_CREATE_TABLE_SQL.format(table=table))
            await db.execute(_CREATE_INDEX_SQL.format(table=table))
        await db.commit()
    logger.info("repository_db_initialized", path=str(path))


class _SQLiteTable(Generic[_M]):
    """JSON document table for one aggregate type."""

    def __init__(self, db_path: str | Path, table: str, model: type[_M]) -> None:
        if table not in TABLES:
            msg = f"Unknown table '{table}'"
            raise ValueError(msg)
        self._db_path = str(db_path)
        self._table = table
        self._model = model

    async def put(self, item_id: str, parent_id: str | None, item: _M) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                _UPSERT_SQL.format(table=self._table),
                (item_id, parent_id, item.model_dump_json()),
            )
            await db.commit()

    async def get(self, item_id: str) -> _M | None:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                f"SELECT data FROM {self._table} WHERE id = ?",  # noqa: S608
                (item_id,),
            )
            row = await cursor.fetchone()
        return self._model.model_validate_json(row[0]) if row else None

    async def find_by_parent(self, parent_id: str) -> list[_M]:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                f"SELECT data FROM {self._table} WHERE parent_id = ? ORDER BY rowid",  # noqa: S608
                (parent_id,),
            )
            rows = await cursor.fetchall()
        return [self._model.model_validate_json(r[0]) for r in rows]

    async def all(self) -> list[_M]:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(f"SELECT data FROM {self._table} ORDER BY rowid")  # noqa: S608
            rows = await cursor.fetchall()
        return [self._model.model_validate_json(r[0]) for r in rows]


class SQLiteProjectionRepository(IProjectionRepository):
    def __init__(self, db_path: str | Path) -> None:
        self._table = _SQLiteTable(db_path, "projections", Projection)

    async def save(self, item: Projection) -> None:
        await self._table.put(item.id, item.semantic_unit_id, item)

    async def get(self, item_id: str) -> Projection | None:
        return await self._table.get(item_id)

    async def find_by_semantic_unit(self, semantic_unit_id: str) -> list[Projection]:
        return await self._table.find_by_parent(semantic_unit_id)


class SQLiteSemanticUnitRepository(ISemanticUnitRepository):
    def __init__(self, db_path: str | Path) -> None:
        self._table = _SQLiteTable(db_path, "semantic_units", SemanticUnit)

    async def save(self, item: SemanticUnit) -> None:
        await self._table.put(item.id, item.source_id, item)

    async def get(self, item_id: str) -> SemanticUnit | None:
        return await self._table.get(item_id)

    async def list_all(self) -> list[SemanticUnit]:
        return await self._table.all()


class SQLiteLineageRepository(ILineageRepository):
    def __init__(self, db_path: str | Path) -> None:
        self._table = _SQLiteTable(db_path, "lineages", Lineage)

    async def save(self, item: Lineage) -> None:
        await self._table.put(item.semantic_unit_id, None, item)

    async def get(self, item_id: str) -> Lineage | None:
        return await self._table.get(item_id)


class SQLiteSourceRepository(ISourceRepository):
    def __init__(self, db_path: str | Path) -> None:
        self._table = _SQLiteTable(db_path, "sources", Source)

    async def save(self, item: Source) -> None:
        await self._table.put(item.id, None, item)

    async def get(self, item_id: str) -> Source | None:
        return await self._table.get(item_id)


class SQLiteExtractionJobRepository(IExtractionJobRepository):
    def __init__(self, db_path: str | Path) -> None:
        self._table = _SQLiteTable(db_path, "extraction_jobs", ExtractionJob)

    async def save(self, item: ExtractionJob) -> None:
        await self._table.put(item.id, item.source_id, item)

    async def get(self, item_id: str) -> ExtractionJob | None:
        return await self._table.get(item_id)

    async def find_by_source(self, source_id: str) -> list[ExtractionJob]:
        return await self._table.find_by_parent(source_id)


class SQLiteProcessingProfileRepository(IProcessingProfileRepository):
    def __init__(self, db_path: str | Path) -> None:
        self._table = _SQLiteTable(db_path, "processing_profiles", ProcessingProfile)

    async def save(self, item: ProcessingProfile) -> None:
        await self._table.put(item.id, None, item)

    async def get(self, item_id: str) -> ProcessingProfile | None:
        return await self._table.get(item_id)
