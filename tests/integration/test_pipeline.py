"""End-to-end tests for KnowledgePipeline: Ingest -> Process -> Catalog -> Search."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from klay.composition import KlayContainer, build_container
from klay.config.settings import Settings
from klay.models.pipeline import (
    CreateProcessingProfileInput,
    ExecutePipelineInput,
    IngestDocumentInput,
    PipelineStep,
    ProcessDocumentInput,
    SearchKnowledgeInput,
)
from klay.models.semantic_unit import SemanticUnitStatus
from klay.models.source import SourceType
from klay.utils.errors import PipelineError


def _settings(**overrides) -> Settings:
    return Settings(
        **{
            "backend": "in_memory",
            "embedding_provider": "hash",
            "embedding_dimensions": 64,
            "chunking_strategy": "recursive",
            "chunk_size": 200,
            "chunk_overlap": 40,
            "min_chunk_size": 10,
            "max_chunk_size": 200,
            **overrides,
        }
    )


def _execute_input(path: Path, source_id: str = "doc-1", **overrides) -> ExecutePipelineInput:
    return ExecutePipelineInput(
        **{
            "source_id": source_id,
            "source_name": path.name,
            "uri": str(path),
            "source_type": SourceType.MARKDOWN,
            "extraction_job_id": f"job-{source_id}",
            "projection_id": f"proj-{source_id}",
            "semantic_unit_id": f"unit-{source_id}",
            "tags": ["vectors"],
            **overrides,
        }
    )


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ======================================================================
# Full run
# ======================================================================


class TestExecute:
    @pytest.mark.asyncio
    async def test_full_run_in_memory(self, container: KlayContainer, sample_file: Path) -> None:
        result = await container.pipeline.execute(_execute_input(sample_file))

        value = result.value
        assert value.unit_id == "unit-doc-1"
        assert value.projection_id == "proj-doc-1"
        assert value.chunks_count >= 2
        assert value.dimensions == 64
        assert value.model == "hash-64"
        assert value.extracted_text_length == len(sample_file.read_text(encoding="utf-8"))

        unit = (await container.knowledge.get_unit("unit-doc-1")).value
        assert unit.status is SemanticUnitStatus.ACTIVE
        assert unit.tags == ["vectors"]
        assert unit.source_type == "MARKDOWN"
        assert await container.vector_store.count("unit-doc-1") == value.chunks_count

    @pytest.mark.asyncio
    async def test_full_run_then_search(self, container: KlayContainer, sample_file: Path) -> None:
        await container.pipeline.execute(_execute_input(sample_file))

        result = await container.pipeline.search_knowledge(
            SearchKnowledgeInput(query_text="Cosine similarity compares the angle", top_k=3)
        )

        found = result.value
        assert found.total_found >= 1
        assert found.items[0]["semantic_unit_id"] == "unit-doc-1"

    @pytest.mark.asyncio
    async def test_full_run_embedded_persists(self, tmp_path: Path, sample_file: Path) -> None:
        settings = _settings(backend="embedded", sqlite_path=str(tmp_path / "kb.db"))
        first = await build_container(settings)
        await first.pipeline.execute(_execute_input(sample_file))

        reopened = await build_container(settings)

        unit = (await reopened.knowledge.get_unit("unit-doc-1")).value
        assert unit.status is SemanticUnitStatus.ACTIVE
        lineage = (await reopened.knowledge.get_lineage("unit-doc-1")).value
        assert lineage.latest_version == 1
        hits = await reopened.retrieval.query(
            sample_file.read_text(encoding="utf-8")[:60], top_k=1
        )
        assert hits.value.items[0].semantic_unit_id == "unit-doc-1"

    @pytest.mark.asyncio
    async def test_progress_reported_at_each_boundary(
        self, container: KlayContainer, sample_file: Path
    ) -> None:
        seen: list[tuple[str, float]] = []
        tracker = container.pipeline.progress_tracker
        tracker.register_listener(
            "doc-1", lambda _run, step, pct, _msg: seen.append((step.value, pct))
        )

        await container.pipeline.execute(_execute_input(sample_file))

        assert seen == [
            ("INGESTION", 0.0),
            ("PROCESSING", 33.0),
            ("CATALOGING", 66.0),
            ("CATALOGING", 100.0),
        ]
        assert tracker.get_status("doc-1")["progress"] == 100.0


# ======================================================================
# Failure reporting
# ======================================================================


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_file_fails_at_ingestion(
        self, container: KlayContainer, tmp_path: Path
    ) -> None:
        result = await container.pipeline.execute(_execute_input(tmp_path / "missing.md"))

        error = result.error
        assert isinstance(error, PipelineError)
        assert error.step is PipelineStep.INGESTION
        assert error.completed_steps == []
        assert error.cause_code == "EXTRACTION_ERROR"

    @pytest.mark.asyncio
    async def test_duplicate_source_fails_at_ingestion(
        self, container: KlayContainer, sample_file: Path
    ) -> None:
        await container.pipeline.execute(_execute_input(sample_file))

        result = await container.pipeline.execute(
            _execute_input(sample_file, extraction_job_id="job-2", projection_id="proj-2")
        )

        assert result.error.step is PipelineStep.INGESTION
        assert result.error.completed_steps == []
        assert result.error.cause_code == "ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_processing_failure_reports_ingestion_done(
        self, container: KlayContainer, sample_file: Path
    ) -> None:
        broken = AsyncMock(side_effect=RuntimeError("embedding backend unreachable"))

        with patch.object(container.embedder, "embed_batch", broken):
            result = await container.pipeline.execute(_execute_input(sample_file))

        error = result.error
        assert error.step is PipelineStep.PROCESSING
        assert error.completed_steps == [PipelineStep.INGESTION]
        assert error.code == "PIPELINE_PROCESSING_FAILED"
        assert error.cause_code == "PROCESSING_EMBEDDING_FAILED"
        assert (await container.ingestion.get_source("doc-1")).is_ok()
        assert (await container.knowledge.get_unit("unit-doc-1")).is_fail()

    @pytest.mark.asyncio
    async def test_duplicate_unit_fails_at_cataloging(
        self, container: KlayContainer, sample_file: Path, tmp_path: Path
    ) -> None:
        await container.pipeline.execute(_execute_input(sample_file))
        other = _write(tmp_path, "other.md", "A different document about sorting algorithms.")

        result = await container.pipeline.execute(
            _execute_input(other, source_id="doc-2", semantic_unit_id="unit-doc-1")
        )

        error = result.error
        assert error.step is PipelineStep.CATALOGING
        assert error.completed_steps == [PipelineStep.INGESTION, PipelineStep.PROCESSING]

    @pytest.mark.asyncio
    async def test_search_failure_is_tagged_cataloging(self, container: KlayContainer) -> None:
        result = await container.pipeline.search_knowledge(SearchKnowledgeInput(query_text="  "))

        assert result.error.step is PipelineStep.CATALOGING
        assert result.error.cause_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_profile_failure_is_tagged_processing(self, container: KlayContainer) -> None:
        result = await container.pipeline.create_processing_profile(
            CreateProcessingProfileInput(
                id="p1", name="P", chunking_strategy_id="semantic", embedding_strategy_id="hash"
            )
        )

        assert result.error.step is PipelineStep.PROCESSING


# ======================================================================
# Granular steps and batches
# ======================================================================


class TestGranularSteps:
    @pytest.mark.asyncio
    async def test_resume_after_ingestion(self, container: KlayContainer, sample_file: Path) -> None:
        pipeline = container.pipeline
        ingested = await pipeline.ingest_document(
            IngestDocumentInput(
                source_id="s1",
                source_name="vectors",
                uri=str(sample_file),
                source_type=SourceType.MARKDOWN,
                extraction_job_id="j1",
            )
        )

        processed = await pipeline.process_document(
            ProcessDocumentInput(
                projection_id="p1",
                semantic_unit_id="u1",
                content=ingested.value.extracted_text,
            ),
            completed_steps=[PipelineStep.INGESTION],
        )

        assert processed.value.chunks_count >= 2
        assert ingested.value.metadata["filename"] == "vectors.md"

    @pytest.mark.asyncio
    async def test_reprocessing_replaces_vectors(
        self, container: KlayContainer, sample_file: Path
    ) -> None:
        text = sample_file.read_text(encoding="utf-8")
        command = ProcessDocumentInput(projection_id="p1", semantic_unit_id="u1", content=text)

        first = await container.pipeline.process_document(command)
        second = await container.pipeline.process_document(
            command.model_copy(update={"projection_id": "p2"})
        )

        assert first.value.chunks_count == second.value.chunks_count
        assert await container.vector_store.count("u1") == second.value.chunks_count

    @pytest.mark.asyncio
    async def test_create_processing_profile(self, container: KlayContainer) -> None:
        result = await container.pipeline.create_processing_profile(
            CreateProcessingProfileInput(
                id="p1",
                name="Default",
                chunking_strategy_id="recursive",
                embedding_strategy_id="hash",
                configuration={"chunk_size": 500},
            )
        )

        assert result.value.profile_id == "p1"
        assert result.value.version == 1

    @pytest.mark.asyncio
    async def test_batch_ingest(
        self, container: KlayContainer, sample_file: Path, tmp_path: Path
    ) -> None:
        def item(source_id: str, uri: str) -> IngestDocumentInput:
            return IngestDocumentInput(
                source_id=source_id,
                source_name=source_id,
                uri=uri,
                source_type=SourceType.MARKDOWN,
                extraction_job_id=f"j-{source_id}",
            )

        results = await container.pipeline.batch_ingest(
            [item("a", str(sample_file)), item("b", str(tmp_path / "gone.md"))]
        )

        assert [r.id for r in results] == ["a", "b"]
        assert results[0].success is True
        assert results[0].data["job_id"] == "j-a"
        assert results[1].success is False
        assert results[1].error_code == "PIPELINE_INGESTION_FAILED"

    @pytest.mark.asyncio
    async def test_batch_process(self, container: KlayContainer) -> None:
        results = await container.pipeline.batch_process(
            [
                ProcessDocumentInput(
                    projection_id="p1", semantic_unit_id="u1", content="Vectors and cosine scores."
                ),
                ProcessDocumentInput(projection_id="p2", semantic_unit_id="u2", content="   "),
            ]
        )

        assert results[0].success is True
        assert results[0].data["dimensions"] == 64
        assert results[1].success is False
        assert results[1].error_code == "PIPELINE_PROCESSING_FAILED"
