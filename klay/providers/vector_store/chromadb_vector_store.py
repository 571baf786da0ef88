"""ChromaDB vector store provider adapter.

Wraps a ChromaDB collection (``chromadb.PersistentClient`` by default) to
implement :class:`IVectorStoreProvider`.  The collection uses cosine
distance, so ``score = 1 - distance``.  Embeddings are always computed by
klay's embedding providers and passed in explicitly.

ChromaDB metadata values must be str, int, float or bool; other values are
stored as JSON strings.  The owner id is kept under a reserved metadata
key so that ``delete_by_owner`` can use a ``where`` clause.
"""

from __future__ import annotations

import json
import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  A version mismatch
# between ChromaDB's bundled PostHog client and the installed one raises
# "capture() takes 1 positional argument but 3 were given".
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from klay.interfaces.vector_store_provider import IVectorStoreProvider
from klay.models.vector import SearchHit, VectorEntry
from klay.providers.vector_store.base import check_entry_dimensions, check_query_dimension
from klay.utils.errors import KlayError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_OWNER_KEY = "_owner_id"


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Keeps ChromaDB from loading its default ONNX model.

    klay always passes pre-computed embeddings, so this is never invoked.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:  # noqa: A002
        raise NotImplementedError("klay passes pre-computed embeddings to ChromaDB")

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBVectorStore(IVectorStoreProvider):
    """Vector store backed by a ChromaDB collection in cosine space."""

    def __init__(
        self,
        dimension: int,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "klay_vectors",
        client: Any | None = None,
    ) -> None:
        self._dimension = dimension
        self._collection_name = collection_name
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=_NoopEmbeddingFunction(),
        )

    async def upsert(self, entries: list[VectorEntry]) -> int:
        if not entries:
            return 0
        check_entry_dimensions(entries, self._dimension, self.get_provider_name())
        try:
            self._collection.upsert(
                ids=[e.id for e in entries],
                embeddings=[e.vector for e in entries],
                documents=[e.content for e in entries],
                metadatas=[self._to_metadata(e) for e in entries],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB upsert failed: {exc}", provider_name=self.get_provider_name()
            ) from exc
        logger.info("vector_store_upsert", provider="chromadb", count=len(entries))
        return len(entries)

    async def delete(self, ids: list[str]) -> int:
        if not ids:
            return 0
        try:
            existing = self._collection.get(ids=ids, include=[])
            found = existing["ids"] or []
            if found:
                self._collection.delete(ids=found)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete failed: {exc}", provider_name=self.get_provider_name()
            ) from exc
        return len(found)

    async def delete_by_owner(self, owner_id: str) -> int:
        try:
            existing = self._collection.get(where={_OWNER_KEY: owner_id}, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                self._collection.delete(where={_OWNER_KEY: owner_id})
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete_by_owner failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("vector_store_delete_by_owner", provider="chromadb", owner_id=owner_id, count=count)
        return count

    async def search(
        self,
        query: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        try:
            total = self._collection.count()
            if total == 0 or top_k <= 0:
                return []
            check_query_dimension(query, self._dimension, self.get_provider_name())

            kwargs: dict[str, Any] = {
                "query_embeddings": [query],
                "n_results": min(top_k, total),
                "include": ["documents", "metadatas", "distances", "embeddings"],
            }
            where_clause = self._translate_filters(filters)
            if where_clause:
                kwargs["where"] = where_clause
            results = self._collection.query(**kwargs)
        except KlayError:
            raise
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}", provider_name=self.get_provider_name()
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)
        embeddings = results.get("embeddings")
        vectors = embeddings[0] if embeddings is not None else [[] for _ in ids]

        hits: list[SearchHit] = []
        for entry_id, doc, meta, distance, vector in zip(
            ids, documents, metadatas, distances, vectors, strict=True
        ):
            metadata = dict(meta or {})
            owner_id = str(metadata.pop(_OWNER_KEY, ""))
            entry = VectorEntry(
                id=entry_id,
                owner_id=owner_id or entry_id,
                vector=[float(x) for x in vector],
                content=doc or "",
                metadata=metadata,
            )
            score = max(-1.0, min(1.0, 1.0 - float(distance)))
            hits.append(SearchHit(entry=entry, score=score))

        hits.sort(key=lambda h: h.score, reverse=True)
        logger.info(
            "vector_store_search",
            provider="chromadb",
            results_count=len(hits),
            top_score=hits[0].score if hits else 0.0,
        )
        return hits

    async def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            return int(self._collection.count())
        existing = self._collection.get(where={_OWNER_KEY: owner_id}, include=[])
        return len(existing["ids"]) if existing["ids"] else 0

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "chromadb"

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_metadata(entry: VectorEntry) -> dict[str, str | int | float | bool]:
        meta: dict[str, str | int | float | bool] = {_OWNER_KEY: entry.owner_id}
        for key, value in entry.metadata.items():
            if isinstance(value, (str, int, float, bool)):
                meta[key] = value
            elif value is not None:
                meta[key] = json.dumps(value, sort_keys=True)
        return meta

    @staticmethod
    def _translate_filters(filters: dict[str, Any] | None) -> dict[str, Any] | None:
        """Translate an exact-match filter dict into a ChromaDB ``where`` clause."""
        if not filters:
            return None
        clauses = [{key: {"$eq": value}} for key, value in filters.items()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
