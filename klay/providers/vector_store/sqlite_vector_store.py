"""SQLite-backed vector store for the embedded deployment.

Persists vectors to a local SQLite database using ``aiosqlite``.  Vectors
are stored as float64 BLOBs and metadata as JSON.  Search loads the rows,
applies the metadata filter, and scores the survivors with numpy; there
is no approximate index, which is adequate for single-machine corpora.

``replace_owner`` deletes and inserts inside one transaction, so readers
never observe an owner with a partial set of entries.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np
import structlog

from klay.interfaces.vector_store_provider import IVectorStoreProvider
from klay.models.vector import SearchHit, VectorEntry
from klay.providers.vector_store.base import (
    check_entry_dimensions,
    check_query_dimension,
    matches_filters,
)
from klay.utils.errors import VectorStoreError
from klay.utils.similarity import cosine_scores

logger = structlog.get_logger(logger_name=__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS vector_entries (
    id        TEXT PRIMARY KEY,
    owner_id  TEXT NOT NULL,
    vector    BLOB NOT NULL,
    content   TEXT NOT NULL,
    metadata  TEXT NOT NULL DEFAULT '{}'
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_vector_entries_owner ON vector_entries(owner_id);",
]

_UPSERT_SQL = """\
INSERT INTO vector_entries (id, owner_id, vector, content, metadata)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET owner_id = excluded.owner_id,
              vector   = excluded.vector,
              content  = excluded.content,
              metadata = excluded.metadata;
"""


class SQLiteVectorStore(IVectorStoreProvider):
    def __init__(self, db_path: str | Path, dimension: int) -> None:
        self._db_path = Path(db_path)
        self._dimension = dimension
        self._initialized = False

    async def initialize(self) -> None:
        """Create the table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        self._initialized = True
        logger.info("vector_db_initialized", path=str(self._db_path))

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def upsert(self, entries: list[VectorEntry]) -> int:
        if not entries:
            return 0
        check_entry_dimensions(entries, self._dimension, self.get_provider_name())
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.executemany(_UPSERT_SQL, [_to_row(e) for e in entries])
                await db.commit()
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"SQLite upsert failed: {exc}", provider_name=self.get_provider_name()
            ) from exc
        logger.debug("vector_store_upsert", provider="sqlite", count=len(entries))
        return len(entries)

    async def delete(self, ids: list[str]) -> int:
        if not ids:
            return 0
        await self._ensure_initialized()
        placeholders = ",".join("?" for _ in ids)
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"DELETE FROM vector_entries WHERE id IN ({placeholders})",  # noqa: S608
                ids,
            )
            await db.commit()
            return cursor.rowcount

    async def delete_by_owner(self, owner_id: str) -> int:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "DELETE FROM vector_entries WHERE owner_id = ?", (owner_id,)
            )
            await db.commit()
            return cursor.rowcount

    async def replace_owner(self, owner_id: str, entries: list[VectorEntry]) -> int:
        check_entry_dimensions(entries, self._dimension, self.get_provider_name())
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                try:
                    cursor = await db.execute(
                        "DELETE FROM vector_entries WHERE owner_id = ?", (owner_id,)
                    )
                    removed = cursor.rowcount
                    await db.executemany(_UPSERT_SQL, [_to_row(e) for e in entries])
                    await db.commit()
                except aiosqlite.Error:
                    await db.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"SQLite replace for owner '{owner_id}' failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug(
            "vector_store_replace_owner",
            provider="sqlite",
            owner_id=owner_id,
            removed=removed,
            written=len(entries),
        )
        return len(entries)

    async def search(
        self,
        query: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        if top_k <= 0:
            return []
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT id, owner_id, vector, content, metadata FROM vector_entries ORDER BY id"
            )
            rows = await cursor.fetchall()

        if not rows:
            return []
        check_query_dimension(query, self._dimension, self.get_provider_name())

        candidates: list[tuple[aiosqlite.Row, dict[str, Any]]] = []
        for row in rows:
            metadata = json.loads(row["metadata"])
            if matches_filters(metadata, filters):
                candidates.append((row, metadata))
        if not candidates:
            return []

        matrix = np.vstack([np.frombuffer(row["vector"], dtype=np.float64) for row, _ in candidates])
        scores = cosine_scores(query, matrix)
        order = np.argsort(-scores, kind="stable")[:top_k]

        hits: list[SearchHit] = []
        for i in order:
            row, metadata = candidates[i]
            entry = VectorEntry(
                id=row["id"],
                owner_id=row["owner_id"],
                vector=matrix[i].tolist(),
                content=row["content"],
                metadata=metadata,
            )
            hits.append(SearchHit(entry=entry, score=float(scores[i])))
        return hits

    async def count(self, owner_id: str | None = None) -> int:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self._db_path)) as db:
            if owner_id is None:
                cursor = await db.execute("SELECT COUNT(*) FROM vector_entries")
            else:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM vector_entries WHERE owner_id = ?", (owner_id,)
                )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "sqlite"


def _to_row(entry: VectorEntry) -> tuple[str, str, bytes, str, str]:
    return (
        entry.id,
        entry.owner_id,
        np.asarray(entry.vector, dtype=np.float64).tobytes(),
        entry.content,
        json.dumps(entry.metadata, sort_keys=True),
    )
