"""Semantic retrieval over the vector store.

Queries are embedded with the same provider that embedded the corpus and
matched by cosine similarity.  Query embeddings are cached per
``(provider, text)`` in an :class:`ICacheProvider` so repeated searches
skip the embedding call.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from klay.interfaces.cache_provider import ICacheProvider
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.interfaces.vector_store_provider import IVectorStoreProvider
from klay.models.result import Result
from klay.models.retrieval import (
    BatchSearchResult,
    RetrievalItem,
    RetrievalResult,
    SimilarityCheck,
)
from klay.models.vector import SearchHit
from klay.utils.concurrency import throttled_gather
from klay.utils.errors import ValidationError, to_klay_error
from klay.utils.text import content_hash

logger = structlog.get_logger(logger_name=__name__)

# How many extra hits find_related pulls so that dropping the unit's own
# chunks still leaves `limit` results.
_RELATED_OVERFETCH = 4


class RetrievalService:
    """Ranked semantic search, similarity checks, and batch search.

    Parameters
    ----------
    embedder:
        Provider used to embed query text.
    vector_store:
        Store holding the projected chunks.
    cache:
        Optional query-embedding cache.
    cache_ttl:
        Time-to-live in seconds for cached query embeddings.
    default_top_k:
        ``top_k`` used when a caller does not pass one.
    batch_concurrency:
        Maximum number of concurrent queries in :meth:`batch_search`.
    """

    def __init__(
        self,
        embedder: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        cache: ICacheProvider | None = None,
        cache_ttl: int = 600,
        default_top_k: int = 5,
        batch_concurrency: int = 8,
    ) -> None:
        self._embedder = embedder
        self._vector_store = vector_store
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._default_top_k = default_top_k
        self._batch_concurrency = batch_concurrency

    async def query(
        self,
        text: str,
        top_k: int | None = None,
        min_score: float = 0.0,
        filters: dict[str, Any] | None = None,
    ) -> Result[RetrievalResult]:
        """Return up to *top_k* items scoring at least *min_score*, best first."""
        k = self._default_top_k if top_k is None else top_k
        if not text or not text.strip():
            return Result.fail(ValidationError("query text is required", field="query_text"))
        if k <= 0:
            return Result.fail(ValidationError("top_k must be positive", field="top_k"))

        try:
            vector = await self._embed_query(text)
            hits = await self._vector_store.search(vector, top_k=k, filters=filters)
        except Exception as exc:  # noqa: BLE001 -- converted into a failed result
            logger.warning("retrieval_query_failed", error=str(exc))
            return Result.fail(to_klay_error(exc))

        items = [_to_item(hit) for hit in hits if hit.score >= min_score]
        logger.info(
            "retrieval_query",
            query_length=len(text),
            top_k=k,
            raw_hits=len(hits),
            results_count=len(items),
            top_score=items[0].score if items else 0.0,
        )
        return Result.ok(RetrievalResult(query_text=text, items=items))

    async def find_most_similar(
        self, text: str, min_score: float = 0.0
    ) -> Result[RetrievalItem | None]:
        """Return the single best match, or ``None`` when nothing reaches *min_score*."""
        result = await self.query(text, top_k=1, min_score=min_score)
        if result.is_fail():
            return Result.fail(result.error)
        items = result.value.items
        return Result.ok(items[0] if items else None)

    async def has_similar_content(self, text: str, threshold: float = 0.9) -> Result[SimilarityCheck]:
        """Report whether any stored chunk scores at least *threshold* against *text*."""
        best = await self.find_most_similar(text, min_score=threshold)
        if best.is_fail():
            return Result.fail(best.error)
        item = best.value
        if item is None:
            return Result.ok(SimilarityCheck(exists=False))
        return Result.ok(
            SimilarityCheck(exists=True, match_id=item.semantic_unit_id, score=item.score)
        )

    async def find_related(
        self,
        unit_id: str,
        text: str,
        limit: int = 5,
        exclude_self: bool = True,
        min_score: float = 0.0,
    ) -> Result[list[RetrievalItem]]:
        """Return up to *limit* items related to *text*, optionally skipping *unit_id*'s chunks."""
        if limit <= 0:
            return Result.fail(ValidationError("limit must be positive", field="limit"))
        fetch_k = limit * _RELATED_OVERFETCH if exclude_self else limit
        result = await self.query(text, top_k=fetch_k, min_score=min_score)
        if result.is_fail():
            return Result.fail(result.error)
        items = result.value.items
        if exclude_self:
            items = [item for item in items if item.semantic_unit_id != unit_id]
        return Result.ok(items[:limit])

    async def batch_search(
        self,
        queries: list[str],
        top_k: int | None = None,
        min_score: float = 0.0,
    ) -> list[BatchSearchResult]:
        """Run several queries concurrently; results keep the input order."""
        semaphore = asyncio.Semaphore(self._batch_concurrency)
        raw = await throttled_gather(
            [self.query(q, top_k=top_k, min_score=min_score) for q in queries],
            semaphore=semaphore,
        )

        results: list[BatchSearchResult] = []
        for query_text, item in zip(queries, raw, strict=True):
            if isinstance(item, BaseException):
                results.append(BatchSearchResult(query=query_text, error=str(item)))
            elif item.is_fail():
                results.append(BatchSearchResult(query=query_text, error=item.error.message))
            else:
                results.append(BatchSearchResult(query=query_text, results=item.value.items))
        return results

    async def _embed_query(self, text: str) -> list[float]:
        if self._cache is None:
            return await self._embedder.embed_single(text)

        key = f"query_embedding:{self._embedder.get_provider_name()}:{content_hash(text)}"
        cached = await self._cache.get(key)
        if cached is not None:
            return list(cached)
        vector = await self._embedder.embed_single(text)
        await self._cache.set(key, vector, ttl=self._cache_ttl)
        return vector


def _to_item(hit: SearchHit) -> RetrievalItem:
    metadata = dict(hit.entry.metadata)
    return RetrievalItem(
        semantic_unit_id=hit.entry.owner_id,
        content=hit.entry.content,
        score=hit.score,
        version=int(metadata.get("version", 0)),
        metadata=metadata,
    )
