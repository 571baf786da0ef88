"""Tests for the composition root."""

from __future__ import annotations

from pathlib import Path

import pytest

from klay.composition import Backend, build_container, build_pipeline
from klay.config.settings import Settings
from klay.models.source import SourceType
from klay.pipeline.orchestrator import KnowledgePipeline
from klay.providers.persistence import SQLiteSourceRepository
from klay.providers.vector_store import InMemoryVectorStore, SQLiteVectorStore
from klay.utils.errors import ConfigurationError


def _settings(**overrides) -> Settings:
    return Settings(
        **{
            "backend": "in_memory",
            "embedding_provider": "hash",
            "embedding_dimensions": 32,
            "openai_api_key": "",
            "cohere_api_key": "",
            **overrides,
        }
    )


class TestBackend:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("in_memory", Backend.IN_MEMORY),
            (" Embedded ", Backend.EMBEDDED),
            ("REMOTE", Backend.REMOTE),
        ],
    )
    def test_parse(self, raw: str, expected: Backend) -> None:
        assert Backend.parse(raw) is expected

    def test_parse_unknown(self) -> None:
        with pytest.raises(ConfigurationError, match="expected one of"):
            Backend.parse("s3")


class TestBuildContainer:
    @pytest.mark.asyncio
    async def test_in_memory(self) -> None:
        container = await build_container(_settings())

        assert container.backend is Backend.IN_MEMORY
        assert isinstance(container.vector_store, InMemoryVectorStore)
        assert container.vector_store.get_dimension() == 32
        assert container.embedder.get_provider_name() == "hash-32"

    @pytest.mark.asyncio
    async def test_embedded_uses_one_sqlite_file(self, tmp_path: Path) -> None:
        db = tmp_path / "data" / "klay.db"

        container = await build_container(_settings(backend="embedded", sqlite_path=str(db)))

        assert isinstance(container.vector_store, SQLiteVectorStore)
        assert db.exists()
        outcome = await container.ingestion.register_source("s1", "n", "/u", SourceType.PLAIN_TEXT)
        assert outcome.is_ok()
        assert await SQLiteSourceRepository(db).exists("s1")

    @pytest.mark.asyncio
    async def test_unknown_chunking_strategy(self) -> None:
        with pytest.raises(ConfigurationError):
            await build_container(_settings(chunking_strategy="semantic"))

    @pytest.mark.asyncio
    async def test_openai_without_key(self) -> None:
        with pytest.raises(ConfigurationError):
            await build_container(_settings(embedding_provider="openai"))

    @pytest.mark.asyncio
    async def test_build_pipeline(self) -> None:
        pipeline = await build_pipeline(_settings())

        assert isinstance(pipeline, KnowledgePipeline)
