"""Projection workflow: chunk -> embed -> store for one semantic unit version.

:meth:`ProjectionService.generate` is the workflow boundary.  Input
validation happens before any state is created; after that, every
failure of the chunking, embedding or storage call is converted into a
:class:`~klay.utils.errors.ProcessingError` tagged with the phase whose
call raised, and the FAILED projection is persisted so the attempt stays
visible.  Nothing here raises for expected failures; callers get an
:class:`~klay.models.result.Outcome` back.

Vector entry ids are deterministic (``{unit}-{version}-{chunk_index}``)
and every run replaces the owner's previous entries, so re-projecting
the same content is idempotent.
"""

from __future__ import annotations

import asyncio

import structlog

from klay.interfaces.chunker import IChunker
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.interfaces.repositories import IProjectionRepository
from klay.interfaces.vector_store_provider import IVectorStoreProvider
from klay.models.events import DomainEvent, ProjectionFailed, ProjectionGenerated
from klay.models.projection import (
    GenerateProjectionCommand,
    Projection,
    ProjectionResult,
    ProjectionSuccess,
)
from klay.models.result import Outcome, Result
from klay.models.vector import Chunk, EmbeddingResult, VectorEntry, make_vector_entry_id
from klay.utils.concurrency import KeyedLocks, throttled_gather
from klay.utils.errors import (
    EmbeddingError,
    KlayError,
    NotFoundError,
    ProcessingError,
    ValidationError,
    to_klay_error,
)

logger = structlog.get_logger(logger_name=__name__)


class ProjectionService:
    """Generates and tracks projections of semantic units.

    Parameters
    ----------
    repository:
        Where projection records (including failed ones) are saved.
    chunker:
        Strategy that splits the unit's content.
    embedder:
        Provider that embeds the chunk contents in one batch.
    vector_store:
        Destination of the vector entries.
    batch_concurrency:
        Maximum number of projections :meth:`batch_process` runs at once.
    """

    def __init__(
        self,
        repository: IProjectionRepository,
        chunker: IChunker,
        embedder: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        batch_concurrency: int = 8,
    ) -> None:
        self._repository = repository
        self._chunker = chunker
        self._embedder = embedder
        self._vector_store = vector_store
        self._batch_concurrency = batch_concurrency
        self._owner_locks = KeyedLocks()

    async def generate(self, command: GenerateProjectionCommand) -> Outcome[ProjectionSuccess]:
        """Run the projection workflow for one unit version."""
        invalid = self._validate(command)
        if invalid is not None:
            return Outcome(Result.fail(invalid))

        projection = Projection.create(
            command.projection_id,
            command.semantic_unit_id,
            command.semantic_unit_version,
            command.type,
        ).mark_processing()
        logger.info(
            "projection_started",
            projection_id=projection.id,
            semantic_unit_id=projection.semantic_unit_id,
            version=projection.semantic_unit_version,
        )

        phase = "chunking"
        try:
            chunks = self._chunker.chunk(command.content)
            if not chunks:
                raise ValueError("chunking produced no chunks")

            phase = "embedding"
            embeddings = await self._embedder.embed_batch([c.content for c in chunks])
            if len(embeddings) != len(chunks):
                raise EmbeddingError(
                    message=f"Expected {len(chunks)} embeddings, got {len(embeddings)}",
                    provider_name=self._embedder.get_provider_name(),
                )

            phase = "storage"
            entries = self._build_entries(command, chunks, embeddings)
            async with self._owner_locks.hold(command.semantic_unit_id):
                await self._vector_store.replace_owner(command.semantic_unit_id, entries)
        except Exception as exc:  # noqa: BLE001 -- workflow boundary
            return await self._record_failure(projection, phase, exc)

        dimensions = embeddings[0].dimensions if embeddings else 0
        model = embeddings[0].model if embeddings else "unknown"
        completed = projection.complete(
            ProjectionResult(
                chunks_count=len(chunks),
                dimensions=dimensions,
                model=model,
                strategy_id=self._embedder.strategy_id,
                strategy_version=self._embedder.version,
            )
        )
        try:
            await self._repository.save(completed)
        except Exception as exc:  # noqa: BLE001 -- workflow boundary
            return await self._record_failure(projection, "storage", exc)

        event = ProjectionGenerated(
            aggregate_id=completed.id,
            semantic_unit_id=completed.semantic_unit_id,
            semantic_unit_version=completed.semantic_unit_version,
            chunks_count=len(chunks),
            dimensions=dimensions,
            model=model,
        )
        logger.info(
            "projection_completed",
            projection_id=completed.id,
            semantic_unit_id=completed.semantic_unit_id,
            chunks=len(chunks),
            dimensions=dimensions,
            model=model,
        )
        return Outcome(
            Result.ok(
                ProjectionSuccess(
                    projection_id=completed.id,
                    chunks_count=len(chunks),
                    dimensions=dimensions,
                    model=model,
                )
            ),
            [event],
        )

    async def get_projection(self, projection_id: str) -> Result[Projection]:
        projection = await self._repository.get(projection_id)
        if projection is None:
            return Result.fail(NotFoundError("Projection", projection_id))
        return Result.ok(projection)

    async def find_by_semantic_unit(self, semantic_unit_id: str) -> Result[list[Projection]]:
        return Result.ok(await self._repository.find_by_semantic_unit(semantic_unit_id))

    async def batch_process(
        self, commands: list[GenerateProjectionCommand]
    ) -> list[Outcome[ProjectionSuccess]]:
        """Generate several projections concurrently.

        Results are in input order.  One item's failure, even an
        unexpected exception, never affects its siblings.
        """
        semaphore = asyncio.Semaphore(self._batch_concurrency)
        raw = await throttled_gather([self.generate(c) for c in commands], semaphore=semaphore)

        outcomes: list[Outcome[ProjectionSuccess]] = []
        for command, item in zip(commands, raw, strict=True):
            if isinstance(item, BaseException):
                logger.error(
                    "batch_projection_crashed", projection_id=command.projection_id, error=str(item)
                )
                outcomes.append(Outcome(Result.fail(to_klay_error(item))))
            else:
                outcomes.append(item)
        logger.info(
            "batch_projection_complete",
            total=len(commands),
            succeeded=sum(1 for o in outcomes if o.is_ok()),
        )
        return outcomes

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(command: GenerateProjectionCommand) -> ValidationError | None:
        if not command.projection_id or not command.projection_id.strip():
            return ValidationError("projection_id is required", field="projection_id")
        if not command.semantic_unit_id or not command.semantic_unit_id.strip():
            return ValidationError("semantic_unit_id is required", field="semantic_unit_id")
        if not command.content or not command.content.strip():
            return ValidationError("content is required", field="content")
        if command.semantic_unit_version < 0:
            return ValidationError(
                "semantic_unit_version must be >= 0", field="semantic_unit_version"
            )
        return None

    def _build_entries(
        self,
        command: GenerateProjectionCommand,
        chunks: list[Chunk],
        embeddings: list[EmbeddingResult],
    ) -> list[VectorEntry]:
        return [
            VectorEntry(
                id=make_vector_entry_id(
                    command.semantic_unit_id, command.semantic_unit_version, chunk.index
                ),
                owner_id=command.semantic_unit_id,
                vector=embedding.vector,
                content=chunk.content,
                metadata={
                    "version": command.semantic_unit_version,
                    "chunk_index": chunk.index,
                    "model": embedding.model,
                    "embedding_strategy": self._embedder.strategy_id,
                    "embedding_version": self._embedder.version,
                    **chunk.metadata,
                },
            )
            for chunk, embedding in zip(chunks, embeddings, strict=True)
        ]

    async def _record_failure(
        self, projection: Projection, phase: str, exc: Exception
    ) -> Outcome[ProjectionSuccess]:
        reason = exc.message if isinstance(exc, KlayError) else (str(exc) or type(exc).__name__)
        failed = projection.fail(reason)
        try:
            await self._repository.save(failed)
        except Exception as save_exc:  # noqa: BLE001
            logger.error(
                "projection_save_failed", projection_id=failed.id, error=str(save_exc)
            )

        events: list[DomainEvent] = [
            ProjectionFailed(
                aggregate_id=failed.id,
                semantic_unit_id=failed.semantic_unit_id,
                semantic_unit_version=failed.semantic_unit_version,
                reason=reason,
                phase=phase,
            )
        ]
        logger.warning(
            "projection_failed",
            projection_id=failed.id,
            semantic_unit_id=failed.semantic_unit_id,
            phase=phase,
            error=reason,
        )
        return Outcome(
            Result.fail(ProcessingError(failed.semantic_unit_id, reason, phase, cause=exc)),
            events,
        )
