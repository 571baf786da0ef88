"""Domain models for klay (Pydantic v2, frozen).

- **vector** -- Chunk, EmbeddingResult, VectorEntry, SearchHit.
- **projection** -- Projection aggregate and its status state machine.
- **semantic_unit** / **lineage** -- the versioned knowledge record and
  its append-only transformation ledger.
- **source** / **profile** -- source registry, extraction jobs, and
  processing profiles.
- **retrieval** -- ranked query results.
- **pipeline** -- pipeline steps and orchestrator inputs/outputs.
- **events** -- domain events returned alongside results.
- **result** -- Result / Outcome values.
"""

from klay.models.events import DomainEvent
from klay.models.lineage import Lineage, Transformation, TransformationType
from klay.models.pipeline import PipelineStep
from klay.models.profile import ProcessingProfile, ProfileStatus
from klay.models.projection import (
    GenerateProjectionCommand,
    Projection,
    ProjectionResult,
    ProjectionStatus,
    ProjectionSuccess,
    ProjectionType,
)
from klay.models.result import Outcome, Result
from klay.models.retrieval import (
    BatchSearchResult,
    RetrievalItem,
    RetrievalResult,
    SimilarityCheck,
)
from klay.models.semantic_unit import SemanticUnit, SemanticUnitStatus
from klay.models.source import ExtractedContent, ExtractionJob, Source, SourceType
from klay.models.vector import Chunk, EmbeddingResult, SearchHit, VectorEntry

__all__ = [
    "BatchSearchResult",
    "Chunk",
    "DomainEvent",
    "EmbeddingResult",
    "ExtractedContent",
    "ExtractionJob",
    "GenerateProjectionCommand",
    "Lineage",
    "Outcome",
    "PipelineStep",
    "ProcessingProfile",
    "ProfileStatus",
    "Projection",
    "ProjectionResult",
    "ProjectionStatus",
    "ProjectionSuccess",
    "ProjectionType",
    "Result",
    "RetrievalItem",
    "RetrievalResult",
    "SearchHit",
    "SemanticUnit",
    "SemanticUnitStatus",
    "SimilarityCheck",
    "Source",
    "SourceType",
    "Transformation",
    "TransformationType",
    "VectorEntry",
]
