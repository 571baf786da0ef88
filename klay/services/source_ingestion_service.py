"""Source registry and text extraction.

A source is registered once (reference only: uri + type) and extracted on
demand by extraction jobs.  Each completed extraction records the content
hash on the source and reports whether it changed since the last run.
"""

from __future__ import annotations

import asyncio

import structlog

from klay.interfaces.repositories import IExtractionJobRepository, ISourceRepository
from klay.interfaces.text_extractor import ITextExtractor
from klay.models.events import DomainEvent, SourceExtracted, SourceRegistered
from klay.models.pipeline import BatchItemResult
from klay.models.result import Outcome, Result
from klay.models.source import (
    ExtractionJob,
    ExtractionSuccess,
    IngestAndExtractSuccess,
    Source,
    SourceType,
)
from klay.utils.concurrency import KeyedLocks, throttled_gather
from klay.utils.errors import (
    AlreadyExistsError,
    ExtractionError,
    KlayError,
    NotFoundError,
    ValidationError,
    to_klay_error,
)

logger = structlog.get_logger(logger_name=__name__)


class SourceIngestionService:
    def __init__(
        self,
        source_repository: ISourceRepository,
        job_repository: IExtractionJobRepository,
        extractor: ITextExtractor,
        batch_concurrency: int = 8,
    ) -> None:
        self._sources = source_repository
        self._jobs = job_repository
        self._extractor = extractor
        self._batch_concurrency = batch_concurrency
        self._locks = KeyedLocks()

    async def register_source(
        self, source_id: str, name: str, uri: str, source_type: SourceType
    ) -> Outcome[Source]:
        """Store a reference to a document.  Nothing is read yet."""
        for field, value in (("source_id", source_id), ("name", name), ("uri", uri)):
            if not value or not value.strip():
                return Outcome(Result.fail(ValidationError(f"{field} is required", field=field)))

        async with self._locks.hold(source_id):
            if await self._sources.exists(source_id):
                return Outcome(Result.fail(AlreadyExistsError("Source", source_id)))
            source = Source(id=source_id, name=name, uri=uri, type=source_type)
            await self._sources.save(source)

        logger.info("source_registered", source_id=source_id, uri=uri, type=source_type.value)
        event = SourceRegistered(
            aggregate_id=source_id, name=name, uri=uri, source_type=source_type.value
        )
        return Outcome(Result.ok(source), [event])

    async def extract_source(self, job_id: str, source_id: str) -> Outcome[ExtractionSuccess]:
        """Run extraction job *job_id* for a registered source.

        The job is persisted in every terminal state; a failed extraction
        leaves a FAILED job carrying the error message.
        """
        if not job_id or not job_id.strip():
            return Outcome(Result.fail(ValidationError("job_id is required", field="job_id")))

        async with self._locks.hold(source_id):
            source = await self._sources.get(source_id)
            if source is None:
                return Outcome(Result.fail(NotFoundError("Source", source_id)))
            if await self._jobs.exists(job_id):
                return Outcome(Result.fail(AlreadyExistsError("ExtractionJob", job_id)))

            job = ExtractionJob(id=job_id, source_id=source_id).start()
            await self._jobs.save(job)

            try:
                extracted = await self._extractor.extract(source.uri, source.mime_type)
            except Exception as exc:  # noqa: BLE001 -- recorded on the job
                error = (
                    exc
                    if isinstance(exc, KlayError)
                    else ExtractionError(message=str(exc) or type(exc).__name__)
                )
                await self._jobs.save(job.fail(error.message))
                logger.warning(
                    "source_extraction_failed", source_id=source_id, job_id=job_id, error=str(error)
                )
                return Outcome(Result.fail(error))

            await self._jobs.save(job.complete(extracted.content_hash))
            updated, changed = source.record_extraction(extracted.content_hash)
            await self._sources.save(updated)

        logger.info(
            "source_extracted",
            source_id=source_id,
            job_id=job_id,
            chars=len(extracted.text),
            changed=changed,
        )
        events: list[DomainEvent] = [
            SourceExtracted(
                aggregate_id=source_id,
                job_id=job_id,
                content_hash=extracted.content_hash,
                changed=changed,
            )
        ]
        return Outcome(
            Result.ok(
                ExtractionSuccess(
                    job_id=job_id,
                    source_id=source_id,
                    content_hash=extracted.content_hash,
                    changed=changed,
                    extracted_text=extracted.text,
                    metadata=extracted.metadata,
                )
            ),
            events,
        )

    async def ingest_and_extract(
        self,
        source_id: str,
        name: str,
        uri: str,
        source_type: SourceType,
        job_id: str,
    ) -> Outcome[IngestAndExtractSuccess]:
        """Register a source and immediately extract it."""
        registered = await self.register_source(source_id, name, uri, source_type)
        if registered.is_fail():
            return Outcome(Result.fail(registered.error), registered.events)

        extracted = await self.extract_source(job_id, source_id)
        events = [*registered.events, *extracted.events]
        if extracted.is_fail():
            return Outcome(Result.fail(extracted.error), events)

        value = extracted.value
        return Outcome(
            Result.ok(
                IngestAndExtractSuccess(
                    source_id=source_id,
                    job_id=job_id,
                    content_hash=value.content_hash,
                    extracted_text=value.extracted_text,
                    metadata=value.metadata,
                )
            ),
            events,
        )

    async def get_source(self, source_id: str) -> Result[Source]:
        source = await self._sources.get(source_id)
        if source is None:
            return Result.fail(NotFoundError("Source", source_id))
        return Result.ok(source)

    async def get_extraction_jobs(self, source_id: str) -> list[ExtractionJob]:
        return await self._jobs.find_by_source(source_id)

    async def batch_register(
        self, sources: list[tuple[str, str, str, SourceType]]
    ) -> list[BatchItemResult]:
        """Register ``(source_id, name, uri, source_type)`` tuples concurrently."""
        semaphore = asyncio.Semaphore(self._batch_concurrency)
        raw = await throttled_gather(
            [self.register_source(*item) for item in sources], semaphore=semaphore
        )
        results: list[BatchItemResult] = []
        for item, outcome in zip(sources, raw, strict=True):
            source_id = item[0]
            if isinstance(outcome, BaseException):
                error = to_klay_error(outcome)
                results.append(_failed_item(source_id, error))
            elif outcome.is_fail():
                results.append(_failed_item(source_id, outcome.error))
            else:
                results.append(BatchItemResult(id=source_id, success=True))
        return results

    async def batch_ingest_and_extract(
        self, sources: list[tuple[str, str, str, SourceType, str]]
    ) -> list[BatchItemResult]:
        """Ingest ``(source_id, name, uri, source_type, job_id)`` tuples concurrently."""
        semaphore = asyncio.Semaphore(self._batch_concurrency)
        raw = await throttled_gather(
            [self.ingest_and_extract(*item) for item in sources], semaphore=semaphore
        )
        results: list[BatchItemResult] = []
        for item, outcome in zip(sources, raw, strict=True):
            source_id, job_id = item[0], item[4]
            if isinstance(outcome, BaseException):
                results.append(_failed_item(source_id, to_klay_error(outcome), job_id=job_id))
            elif outcome.is_fail():
                results.append(_failed_item(source_id, outcome.error, job_id=job_id))
            else:
                results.append(
                    BatchItemResult(
                        id=source_id,
                        success=True,
                        data={"job_id": job_id, "content_hash": outcome.value.content_hash},
                    )
                )
        logger.info(
            "batch_ingest_complete",
            total=len(sources),
            succeeded=sum(1 for r in results if r.success),
        )
        return results


def _failed_item(item_id: str, error: KlayError, job_id: str | None = None) -> BatchItemResult:
    return BatchItemResult(
        id=item_id,
        success=False,
        data={"job_id": job_id} if job_id else {},
        error=error.message,
        error_code=error.code,
    )
