"""Utility modules for klay.

- **errors** -- Domain exception hierarchy rooted at KlayError.
- **logging** -- structlog setup with coloured console output in development
  and structured JSON in production.
- **concurrency** -- throttled gather for batch operations and per-key
  asyncio locks for write serialisation.
- **retry** -- bounded exponential backoff for remote provider calls.
- **similarity** -- numpy cosine similarity used by the vector stores.
- **text** -- abbreviation-aware sentence splitting and content hashing.
"""

from klay.utils.concurrency import KeyedLocks, throttled_gather
from klay.utils.errors import (
    AlreadyExistsError,
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    ExtractionError,
    InvalidStateError,
    KlayError,
    NotFoundError,
    PipelineError,
    ProcessingError,
    ValidationError,
    VectorStoreError,
    to_klay_error,
)
from klay.utils.logging import configure_logging
from klay.utils.retry import retry_async
from klay.utils.similarity import cosine_similarity
from klay.utils.text import content_hash, split_sentences, strip_span

__all__ = [
    "AlreadyExistsError",
    "ConfigurationError",
    "DimensionMismatchError",
    "EmbeddingError",
    "ExtractionError",
    "InvalidStateError",
    "KeyedLocks",
    "KlayError",
    "NotFoundError",
    "PipelineError",
    "ProcessingError",
    "ValidationError",
    "VectorStoreError",
    "configure_logging",
    "content_hash",
    "cosine_similarity",
    "retry_async",
    "split_sentences",
    "strip_span",
    "throttled_gather",
    "to_klay_error",
]
