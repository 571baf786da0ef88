"""Composition root: builds a fully wired :class:`KnowledgePipeline` from settings.

The infrastructure variant is chosen by :class:`Backend`:

* ``IN_MEMORY`` -- dict repositories and the numpy in-memory vector store.
* ``EMBEDDED``  -- aiosqlite repositories and the SQLite vector store, both in
  the single database file at ``sqlite_path``.
* ``REMOTE``    -- aiosqlite repositories and a persistent ChromaDB
  collection for the vectors.

Nothing outside this module picks concrete providers; services and the
orchestrator only see the interfaces.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from klay.config.settings import Settings
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.interfaces.repositories import (
    IExtractionJobRepository,
    ILineageRepository,
    IProcessingProfileRepository,
    IProjectionRepository,
    ISemanticUnitRepository,
    ISourceRepository,
)
from klay.interfaces.vector_store_provider import IVectorStoreProvider
from klay.pipeline.orchestrator import KnowledgePipeline
from klay.pipeline.progress_tracker import ProgressTracker
from klay.providers.cache.memory_cache import MemoryCacheProvider
from klay.providers.chunking import CHUNKING_STRATEGIES, build_chunker
from klay.providers.embedding import EMBEDDING_STRATEGIES, build_embedding_provider
from klay.providers.extraction.file_text_extractor import FileTextExtractor
from klay.providers.persistence import (
    InMemoryExtractionJobRepository,
    InMemoryLineageRepository,
    InMemoryProcessingProfileRepository,
    InMemoryProjectionRepository,
    InMemorySemanticUnitRepository,
    InMemorySourceRepository,
    SQLiteExtractionJobRepository,
    SQLiteLineageRepository,
    SQLiteProcessingProfileRepository,
    SQLiteProjectionRepository,
    SQLiteSemanticUnitRepository,
    SQLiteSourceRepository,
    initialize_schema,
)
from klay.providers.vector_store import InMemoryVectorStore, SQLiteVectorStore
from klay.services.profile_service import ProfileService
from klay.services.projection_service import ProjectionService
from klay.services.retrieval_service import RetrievalService
from klay.services.semantic_knowledge_service import SemanticKnowledgeService
from klay.services.source_ingestion_service import SourceIngestionService
from klay.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class Backend(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    IN_MEMORY = "in_memory"
    EMBEDDED = "embedded"
    REMOTE = "remote"

    @classmethod
    def parse(cls, value: str) -> Backend:
        try:
            return cls(value.strip().lower())
        except ValueError:
            known = ", ".join(b.value for b in cls)
            raise ConfigurationError(f"Unknown backend '{value}'; expected one of: {known}") from None


@dataclass(frozen=True)
class Repositories:
    projections: IProjectionRepository
    units: ISemanticUnitRepository
    lineages: ILineageRepository
    sources: ISourceRepository
    jobs: IExtractionJobRepository
    profiles: IProcessingProfileRepository


@dataclass(frozen=True)
class KlayContainer:
    """Everything the composition root built, for callers that need more
    than the orchestrator (the CLI reads lineage and deprecates units)."""

    settings: Settings
    backend: Backend
    pipeline: KnowledgePipeline
    ingestion: SourceIngestionService
    projection: ProjectionService
    knowledge: SemanticKnowledgeService
    retrieval: RetrievalService
    profiles: ProfileService
    vector_store: IVectorStoreProvider
    embedder: IEmbeddingProvider


async def build_repositories(backend: Backend, settings: Settings) -> Repositories:
    if backend is Backend.IN_MEMORY:
        return Repositories(
            projections=InMemoryProjectionRepository(),
            units=InMemorySemanticUnitRepository(),
            lineages=InMemoryLineageRepository(),
            sources=InMemorySourceRepository(),
            jobs=InMemoryExtractionJobRepository(),
            profiles=InMemoryProcessingProfileRepository(),
        )

    db_path = settings.sqlite_path
    await initialize_schema(db_path)
    return Repositories(
        projections=SQLiteProjectionRepository(db_path),
        units=SQLiteSemanticUnitRepository(db_path),
        lineages=SQLiteLineageRepository(db_path),
        sources=SQLiteSourceRepository(db_path),
        jobs=SQLiteExtractionJobRepository(db_path),
        profiles=SQLiteProcessingProfileRepository(db_path),
    )


async def build_vector_store(
    backend: Backend, settings: Settings, dimension: int
) -> IVectorStoreProvider:
    if backend is Backend.IN_MEMORY:
        return InMemoryVectorStore(dimension=dimension)
    if backend is Backend.EMBEDDED:
        store = SQLiteVectorStore(settings.sqlite_path, dimension=dimension)
        await store.initialize()
        return store

    # Deferred so in-memory and embedded deployments never import chromadb.
    from klay.providers.vector_store.chromadb_vector_store import ChromaDBVectorStore

    return ChromaDBVectorStore(
        dimension=dimension,
        persist_directory=settings.chromadb_persist_dir,
        collection_name=settings.chromadb_collection,
    )


async def build_container(settings: Settings | None = None) -> KlayContainer:
    """Wire every provider and service for the configured backend.

    Raises
    ------
    ConfigurationError
        If the backend, chunking strategy or embedding provider is unknown,
        or a remote embedding provider lacks credentials.
    """
    settings = settings or Settings()
    backend = Backend.parse(settings.backend)

    embedder = build_embedding_provider(
        settings.embedding_provider, settings, EMBEDDING_STRATEGIES
    )
    chunker = build_chunker(settings.chunking_strategy, settings, CHUNKING_STRATEGIES)
    repositories = await build_repositories(backend, settings)
    vector_store = await build_vector_store(backend, settings, embedder.get_dimension())

    ingestion = SourceIngestionService(
        source_repository=repositories.sources,
        job_repository=repositories.jobs,
        extractor=FileTextExtractor(),
        batch_concurrency=settings.batch_concurrency,
    )
    projection = ProjectionService(
        repository=repositories.projections,
        chunker=chunker,
        embedder=embedder,
        vector_store=vector_store,
        batch_concurrency=settings.batch_concurrency,
    )
    knowledge = SemanticKnowledgeService(
        unit_repository=repositories.units,
        lineage_repository=repositories.lineages,
    )
    retrieval = RetrievalService(
        embedder=embedder,
        vector_store=vector_store,
        cache=MemoryCacheProvider(
            max_size=settings.query_cache_size, ttl=settings.query_cache_ttl
        ),
        cache_ttl=settings.query_cache_ttl,
        default_top_k=settings.default_top_k,
        batch_concurrency=settings.batch_concurrency,
    )
    profiles = ProfileService(
        repository=repositories.profiles,
        chunking_strategies=CHUNKING_STRATEGIES,
        embedding_strategies=EMBEDDING_STRATEGIES,
    )
    pipeline = KnowledgePipeline(
        ingestion=ingestion,
        projection=projection,
        knowledge=knowledge,
        retrieval=retrieval,
        profiles=profiles,
        progress_tracker=ProgressTracker(),
        batch_concurrency=settings.batch_concurrency,
    )

    logger.info(
        "pipeline_built",
        backend=backend.value,
        embedding=embedder.get_provider_name(),
        dimension=embedder.get_dimension(),
        chunking=chunker.strategy_id,
        vector_store=vector_store.get_provider_name(),
    )
    return KlayContainer(
        settings=settings,
        backend=backend,
        pipeline=pipeline,
        ingestion=ingestion,
        projection=projection,
        knowledge=knowledge,
        retrieval=retrieval,
        profiles=profiles,
        vector_store=vector_store,
        embedder=embedder,
    )


async def build_pipeline(settings: Settings | None = None) -> KnowledgePipeline:
    """Shortcut for callers that only need the orchestrator."""
    container = await build_container(settings)
    return container.pipeline
