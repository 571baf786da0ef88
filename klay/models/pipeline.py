"""Knowledge pipeline step and input/output models.

The pipeline moves through three strictly sequential steps::

    INGESTION -> PROCESSING -> CATALOGING

Each step's output is required input to the next.  When a step fails, the
orchestrator reports the steps that already completed (see
:class:`~klay.utils.errors.PipelineError`), so the granular entry points
below can resume from the next step with the prior outputs supplied by the
caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from klay.models.projection import ProjectionType
from klay.models.source import SourceType


class PipelineStep(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    INGESTION = "INGESTION"
    PROCESSING = "PROCESSING"
    CATALOGING = "CATALOGING"


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------
class ExecutePipelineInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    source_name: str
    uri: str
    source_type: SourceType
    extraction_job_id: str
    projection_id: str
    semantic_unit_id: str
    projection_type: ProjectionType = ProjectionType.EMBEDDING
    language: str = "en"
    created_by: str = "system"
    topics: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    summary: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class ExecutePipelineSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    unit_id: str
    projection_id: str
    content_hash: str
    extracted_text_length: int
    chunks_count: int
    dimensions: int
    model: str


# ---------------------------------------------------------------------------
# Step 1: ingestion
# ---------------------------------------------------------------------------
class IngestDocumentInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    source_name: str
    uri: str
    source_type: SourceType
    extraction_job_id: str


class IngestDocumentSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    job_id: str
    content_hash: str
    extracted_text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Step 2: processing
# ---------------------------------------------------------------------------
class ProcessDocumentInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    projection_id: str
    semantic_unit_id: str
    semantic_unit_version: int = 1
    content: str
    projection_type: ProjectionType = ProjectionType.EMBEDDING


class ProcessDocumentSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    projection_id: str
    chunks_count: int
    dimensions: int
    model: str


# ---------------------------------------------------------------------------
# Step 3: cataloging
# ---------------------------------------------------------------------------
class CatalogDocumentInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit_id: str
    source_id: str
    source_type: SourceType | None = None
    content: str
    language: str = "en"
    created_by: str = "system"
    topics: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    summary: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class CatalogDocumentSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit_id: str
    version: int
    status: str


# ---------------------------------------------------------------------------
# Retrieval and profiles
# ---------------------------------------------------------------------------
class SearchKnowledgeInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_text: str
    top_k: int = Field(default=5, gt=0)
    min_score: float = Field(default=0.0, ge=-1.0, le=1.0)
    filters: dict[str, Any] | None = None


class SearchKnowledgeSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_text: str
    items: list[dict[str, Any]] = Field(default_factory=list)
    total_found: int = 0


class CreateProcessingProfileInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    chunking_strategy_id: str
    embedding_strategy_id: str
    configuration: dict[str, Any] = Field(default_factory=dict)


class CreateProcessingProfileSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile_id: str
    version: int


# ---------------------------------------------------------------------------
# Batch item report
# ---------------------------------------------------------------------------
class BatchItemResult(BaseModel):
    """Per-item outcome of a batch operation; one failure never hides another."""

    model_config = ConfigDict(frozen=True)

    id: str
    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None
