"""Knowledge pipeline orchestrator: Ingest -> Process -> Catalog.

:meth:`KnowledgePipeline.execute` runs the three steps strictly in order,
feeding each step's output into the next.  On failure it returns a
:class:`~klay.utils.errors.PipelineError` naming the failing step and the
steps that already committed, so the caller can resume with the granular
entry points (:meth:`ingest_document`, :meth:`process_document`,
:meth:`catalog_document`) instead of starting over.

The orchestrator holds no domain logic.  Every service is injected at
construction time, and every step boundary converts unexpected exceptions
into the error taxonomy; nothing is retried here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from klay.models.pipeline import (
    BatchItemResult,
    CatalogDocumentInput,
    CatalogDocumentSuccess,
    CreateProcessingProfileInput,
    CreateProcessingProfileSuccess,
    ExecutePipelineInput,
    ExecutePipelineSuccess,
    IngestDocumentInput,
    IngestDocumentSuccess,
    PipelineStep,
    ProcessDocumentInput,
    ProcessDocumentSuccess,
    SearchKnowledgeInput,
    SearchKnowledgeSuccess,
)
from klay.models.projection import GenerateProjectionCommand
from klay.models.result import Outcome, Result
from klay.pipeline.progress_tracker import ProgressTracker
from klay.services.profile_service import ProfileService
from klay.services.projection_service import ProjectionService
from klay.services.retrieval_service import RetrievalService
from klay.services.semantic_knowledge_service import SemanticKnowledgeService
from klay.services.source_ingestion_service import SourceIngestionService
from klay.utils.concurrency import throttled_gather
from klay.utils.errors import PipelineError

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")


async def _run_step(
    step: PipelineStep,
    completed_steps: Sequence[PipelineStep],
    call: Callable[[], Awaitable[Outcome[_T] | Result[_T]]],
) -> Result[_T]:
    """Await one service call and tag any failure with *step*."""
    try:
        outcome = await call()
    except Exception as exc:  # noqa: BLE001 -- converted at the step boundary
        logger.error("pipeline_step_crashed", step=step.value, error=str(exc))
        return Result.fail(PipelineError.from_step(step, exc, completed_steps))
    if outcome.is_fail():
        return Result.fail(PipelineError.from_step(step, outcome.error, completed_steps))
    return Result.ok(outcome.value)


class KnowledgePipeline:
    """Single public entry point coordinating the knowledge services.

    Parameters
    ----------
    ingestion:
        Registers sources and extracts their text.
    projection:
        Chunks, embeds and stores extracted text.
    knowledge:
        Catalogs semantic units and their lineage.
    retrieval:
        Answers semantic search queries.
    profiles:
        Manages processing profiles.
    progress_tracker:
        Receives a progress update at every step boundary.  A private
        tracker is created when omitted.
    batch_concurrency:
        Maximum number of items a batch operation runs at once.
    """

    def __init__(
        self,
        ingestion: SourceIngestionService,
        projection: ProjectionService,
        knowledge: SemanticKnowledgeService,
        retrieval: RetrievalService,
        profiles: ProfileService,
        progress_tracker: ProgressTracker | None = None,
        batch_concurrency: int = 8,
    ) -> None:
        self._ingestion = ingestion
        self._projection = projection
        self._knowledge = knowledge
        self._retrieval = retrieval
        self._profiles = profiles
        self._progress = progress_tracker or ProgressTracker()
        self._batch_concurrency = batch_concurrency

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._progress

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def execute(self, data: ExecutePipelineInput) -> Result[ExecutePipelineSuccess]:
        """Run Ingestion, Processing and Cataloging for one document.

        The run id used for progress updates is the source id.
        """
        run_id = data.source_id
        completed: list[PipelineStep] = []
        logger.info("pipeline_started", source_id=data.source_id, unit_id=data.semantic_unit_id)

        # Step 1: ingestion
        await self._progress.update(run_id, PipelineStep.INGESTION, 0.0, "Extracting source text")
        ingested = await self.ingest_document(
            IngestDocumentInput(
                source_id=data.source_id,
                source_name=data.source_name,
                uri=data.uri,
                source_type=data.source_type,
                extraction_job_id=data.extraction_job_id,
            )
        )
        if ingested.is_fail():
            return self._failed(run_id, ingested)
        completed.append(PipelineStep.INGESTION)
        text = ingested.value.extracted_text

        # Step 2: processing
        await self._progress.update(run_id, PipelineStep.PROCESSING, 33.0, "Projecting content")
        processed = await self.process_document(
            ProcessDocumentInput(
                projection_id=data.projection_id,
                semantic_unit_id=data.semantic_unit_id,
                semantic_unit_version=1,
                content=text,
                projection_type=data.projection_type,
            ),
            completed_steps=completed,
        )
        if processed.is_fail():
            return self._failed(run_id, processed)
        completed.append(PipelineStep.PROCESSING)

        # Step 3: cataloging
        await self._progress.update(run_id, PipelineStep.CATALOGING, 66.0, "Cataloging unit")
        cataloged = await self.catalog_document(
            CatalogDocumentInput(
                unit_id=data.semantic_unit_id,
                source_id=data.source_id,
                source_type=data.source_type,
                content=text,
                language=data.language,
                created_by=data.created_by,
                topics=data.topics,
                tags=data.tags,
                summary=data.summary,
                attributes=data.attributes,
            ),
            completed_steps=completed,
        )
        if cataloged.is_fail():
            return self._failed(run_id, cataloged)

        await self._progress.update(run_id, PipelineStep.CATALOGING, 100.0, "Pipeline complete")
        success = ExecutePipelineSuccess(
            source_id=data.source_id,
            unit_id=cataloged.value.unit_id,
            projection_id=processed.value.projection_id,
            content_hash=ingested.value.content_hash,
            extracted_text_length=len(text),
            chunks_count=processed.value.chunks_count,
            dimensions=processed.value.dimensions,
            model=processed.value.model,
        )
        logger.info(
            "pipeline_completed",
            source_id=data.source_id,
            unit_id=success.unit_id,
            chunks=success.chunks_count,
        )
        return Result.ok(success)

    # ------------------------------------------------------------------
    # Granular steps
    # ------------------------------------------------------------------

    async def ingest_document(self, data: IngestDocumentInput) -> Result[IngestDocumentSuccess]:
        """Register the source and extract its text (the first step)."""
        result = await _run_step(
            PipelineStep.INGESTION,
            [],
            lambda: self._ingestion.ingest_and_extract(
                data.source_id,
                data.source_name,
                data.uri,
                data.source_type,
                data.extraction_job_id,
            ),
        )
        if result.is_fail():
            return Result.fail(result.error)
        value = result.value
        return Result.ok(
            IngestDocumentSuccess(
                source_id=value.source_id,
                job_id=value.job_id,
                content_hash=value.content_hash,
                extracted_text=value.extracted_text,
                metadata=dict(value.metadata),
            )
        )

    async def process_document(
        self,
        data: ProcessDocumentInput,
        completed_steps: Sequence[PipelineStep] = (),
    ) -> Result[ProcessDocumentSuccess]:
        """Chunk, embed and store *data.content* under the semantic unit id.

        *completed_steps* lets a resuming caller state which steps it has
        already run, so a failure report stays accurate.
        """
        command = GenerateProjectionCommand(
            projection_id=data.projection_id,
            semantic_unit_id=data.semantic_unit_id,
            semantic_unit_version=data.semantic_unit_version,
            content=data.content,
            type=data.projection_type,
        )
        result = await _run_step(
            PipelineStep.PROCESSING,
            list(completed_steps),
            lambda: self._projection.generate(command),
        )
        if result.is_fail():
            return Result.fail(result.error)
        value = result.value
        return Result.ok(
            ProcessDocumentSuccess(
                projection_id=value.projection_id,
                chunks_count=value.chunks_count,
                dimensions=value.dimensions,
                model=value.model,
            )
        )

    async def catalog_document(
        self,
        data: CatalogDocumentInput,
        completed_steps: Sequence[PipelineStep] = (),
    ) -> Result[CatalogDocumentSuccess]:
        """Create the semantic unit with its lineage, then activate it."""
        steps = list(completed_steps)
        created = await _run_step(
            PipelineStep.CATALOGING,
            steps,
            lambda: self._knowledge.create_unit(
                unit_id=data.unit_id,
                source_id=data.source_id,
                content=data.content,
                source_type=data.source_type.value if data.source_type else None,
                language=data.language,
                topics=data.topics,
                tags=data.tags,
                summary=data.summary,
                attributes=data.attributes,
                created_by=data.created_by,
            ),
        )
        if created.is_fail():
            return Result.fail(created.error)

        activated = await _run_step(
            PipelineStep.CATALOGING,
            steps,
            lambda: self._knowledge.activate_unit(data.unit_id),
        )
        if activated.is_fail():
            return Result.fail(activated.error)
        unit = activated.value
        return Result.ok(
            CatalogDocumentSuccess(
                unit_id=unit.id, version=unit.current_version, status=unit.status.value
            )
        )

    async def search_knowledge(self, data: SearchKnowledgeInput) -> Result[SearchKnowledgeSuccess]:
        """Query the cataloged knowledge; failures are tagged CATALOGING."""
        result = await _run_step(
            PipelineStep.CATALOGING,
            [],
            lambda: self._retrieval.query(
                data.query_text,
                top_k=data.top_k,
                min_score=data.min_score,
                filters=data.filters,
            ),
        )
        if result.is_fail():
            return Result.fail(result.error)
        retrieved = result.value
        return Result.ok(
            SearchKnowledgeSuccess(
                query_text=retrieved.query_text,
                items=[item.model_dump() for item in retrieved.items],
                total_found=retrieved.total_found,
            )
        )

    async def create_processing_profile(
        self, data: CreateProcessingProfileInput
    ) -> Result[CreateProcessingProfileSuccess]:
        result = await _run_step(
            PipelineStep.PROCESSING,
            [],
            lambda: self._profiles.create_profile(
                data.id,
                data.name,
                data.chunking_strategy_id,
                data.embedding_strategy_id,
                data.configuration,
            ),
        )
        if result.is_fail():
            return Result.fail(result.error)
        profile = result.value
        return Result.ok(CreateProcessingProfileSuccess(profile_id=profile.id, version=profile.version))

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    async def batch_ingest(self, inputs: list[IngestDocumentInput]) -> list[BatchItemResult]:
        """Ingest several documents concurrently; one report per input, in order."""
        raw = await throttled_gather(
            [self.ingest_document(item) for item in inputs],
            semaphore=asyncio.Semaphore(self._batch_concurrency),
        )
        return [
            _batch_item(
                item.source_id,
                result,
                lambda v: {"job_id": v.job_id, "content_hash": v.content_hash},
                PipelineStep.INGESTION,
            )
            for item, result in zip(inputs, raw, strict=True)
        ]

    async def batch_process(self, inputs: list[ProcessDocumentInput]) -> list[BatchItemResult]:
        """Project several documents concurrently; one report per input, in order."""
        raw = await throttled_gather(
            [self.process_document(item) for item in inputs],
            semaphore=asyncio.Semaphore(self._batch_concurrency),
        )
        return [
            _batch_item(
                item.projection_id,
                result,
                lambda v: {
                    "chunks_count": v.chunks_count,
                    "dimensions": v.dimensions,
                    "model": v.model,
                },
                PipelineStep.PROCESSING,
            )
            for item, result in zip(inputs, raw, strict=True)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _failed(self, run_id: str, result: Result[_T]) -> Result[ExecutePipelineSuccess]:
        error = result.error
        completed = error.completed_steps if isinstance(error, PipelineError) else []
        logger.warning(
            "pipeline_failed",
            run_id=run_id,
            code=error.code,
            completed_steps=[s.value for s in completed],
            error=error.message,
        )
        return Result.fail(error)


def _batch_item(
    item_id: str,
    result: Result[_T] | BaseException,
    summarize: Callable[[_T], dict],
    step: PipelineStep,
) -> BatchItemResult:
    if isinstance(result, BaseException):
        error = PipelineError.from_step(step, result, [])
        return BatchItemResult(id=item_id, success=False, error=error.message, error_code=error.code)
    if result.is_fail():
        return BatchItemResult(
            id=item_id, success=False, error=result.error.message, error_code=result.error.code
        )
    return BatchItemResult(id=item_id, success=True, data=summarize(result.value))
