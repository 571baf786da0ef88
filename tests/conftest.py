"""Shared pytest fixtures for the klay test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from klay.composition import KlayContainer, build_container
from klay.config.settings import Settings
from klay.providers.chunking import RecursiveChunker
from klay.providers.embedding import HashEmbeddingProvider
from klay.providers.persistence import (
    InMemoryLineageRepository,
    InMemoryProjectionRepository,
    InMemorySemanticUnitRepository,
)
from klay.providers.vector_store import InMemoryVectorStore
from klay.services.projection_service import ProjectionService
from klay.services.semantic_knowledge_service import SemanticKnowledgeService

EMBEDDING_DIM = 64


def make_settings(**overrides) -> Settings:
    """Settings for an offline, in-memory pipeline with small chunks."""
    defaults = {
        "backend": "in_memory",
        "embedding_provider": "hash",
        "embedding_dimensions": EMBEDDING_DIM,
        "chunking_strategy": "recursive",
        "chunk_size": 200,
        "chunk_overlap": 40,
        "min_chunk_size": 10,
        "max_chunk_size": 200,
        "openai_api_key": "",
        "cohere_api_key": "",
        "batch_concurrency": 4,
    }
    defaults.update(overrides)
    return Settings(**defaults)


SAMPLE_DOCUMENT = (
    "Vector databases store embeddings and answer similarity queries.\n\n"
    "Cosine similarity compares the angle between two vectors. "
    "A score of one means the vectors point the same way.\n\n"
    "Chunking splits long documents into passages small enough to embed. "
    "Overlap between passages keeps ideas that straddle a boundary searchable."
)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def embedder(settings: Settings) -> HashEmbeddingProvider:
    return HashEmbeddingProvider(settings)


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(dimension=EMBEDDING_DIM)


@pytest.fixture
def projection_repository() -> InMemoryProjectionRepository:
    return InMemoryProjectionRepository()


@pytest.fixture
def projection_service(
    projection_repository: InMemoryProjectionRepository,
    embedder: HashEmbeddingProvider,
    vector_store: InMemoryVectorStore,
) -> ProjectionService:
    return ProjectionService(
        repository=projection_repository,
        chunker=RecursiveChunker(chunk_size=200, chunk_overlap=40),
        embedder=embedder,
        vector_store=vector_store,
    )


@pytest.fixture
def knowledge_service() -> SemanticKnowledgeService:
    return SemanticKnowledgeService(
        unit_repository=InMemorySemanticUnitRepository(),
        lineage_repository=InMemoryLineageRepository(),
    )


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "vectors.md"
    path.write_text(SAMPLE_DOCUMENT, encoding="utf-8")
    return path


@pytest_asyncio.fixture
async def container(settings: Settings) -> KlayContainer:
    return await build_container(settings)
