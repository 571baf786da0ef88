"""Source registry and extraction job models.

A :class:`Source` stores only a reference (uri + type) to a document; the
text is produced on demand by an extraction job.  The content hash recorded
after each extraction lets callers detect whether a source changed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from klay.utils.errors import InvalidStateError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class SourceType(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    PDF = "PDF"
    WEB = "WEB"
    API = "API"
    PLAIN_TEXT = "PLAIN_TEXT"
    MARKDOWN = "MARKDOWN"
    CSV = "CSV"
    JSON = "JSON"


# Used to pick the extraction routine for a registered source.
SOURCE_TYPE_TO_MIME: dict[SourceType, str] = {
    SourceType.PDF: "application/pdf",
    SourceType.WEB: "text/html",
    SourceType.API: "application/json",
    SourceType.PLAIN_TEXT: "text/plain",
    SourceType.MARKDOWN: "text/markdown",
    SourceType.CSV: "text/csv",
    SourceType.JSON: "application/json",
}


class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    uri: str = Field(min_length=1)
    type: SourceType
    content_hash: str | None = None
    registered_at: datetime = Field(default_factory=_utcnow)
    last_extracted_at: datetime | None = None

    @property
    def mime_type(self) -> str:
        return SOURCE_TYPE_TO_MIME[self.type]

    def record_extraction(self, content_hash: str) -> tuple[Source, bool]:
        """Return the updated source and whether the content changed."""
        changed = self.content_hash != content_hash
        updated = self.model_copy(
            update={"content_hash": content_hash, "last_extracted_at": _utcnow()}
        )
        return updated, changed


class ExtractedContent(BaseModel):
    """What a text extractor returns for one uri."""

    model_config = ConfigDict(frozen=True)

    text: str
    content_hash: str
    mime_type: str
    metadata: dict[str, str | int] = Field(default_factory=dict)


class ExtractionStatus(str, Enum):  # noqa: UP042
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ExtractionJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    source_id: str = Field(min_length=1)
    status: ExtractionStatus = ExtractionStatus.PENDING
    content_hash: str | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    def start(self) -> ExtractionJob:
        if self.status is not ExtractionStatus.PENDING:
            raise InvalidStateError(
                f"Extraction job '{self.id}' cannot start from {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(update={"status": ExtractionStatus.RUNNING})

    def complete(self, content_hash: str) -> ExtractionJob:
        if self.status is not ExtractionStatus.RUNNING:
            raise InvalidStateError(
                f"Extraction job '{self.id}' cannot complete from {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={
                "status": ExtractionStatus.COMPLETED,
                "content_hash": content_hash,
                "completed_at": _utcnow(),
            }
        )

    def fail(self, error: str) -> ExtractionJob:
        if self.status is not ExtractionStatus.RUNNING:
            raise InvalidStateError(
                f"Extraction job '{self.id}' cannot fail from {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={
                "status": ExtractionStatus.FAILED,
                "error": error,
                "completed_at": _utcnow(),
            }
        )


class ExtractionSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_id: str
    source_id: str
    content_hash: str
    changed: bool
    extracted_text: str
    metadata: dict[str, str | int] = Field(default_factory=dict)


class IngestAndExtractSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    job_id: str
    content_hash: str
    extracted_text: str
    metadata: dict[str, str | int] = Field(default_factory=dict)
