"""Custom exception hierarchy for klay.

All application exceptions inherit from :class:`KlayError`, which carries a
machine-readable ``code`` and an optional ``provider_name`` so error handlers
can identify which backend (e.g. "openai", "sqlite", "chromadb") caused the
failure.

The hierarchy is organized by the kind of failure rather than by module:

    KlayError  (base -- catch-all for any klay error)
    +-- ValidationError        (missing/blank required input, before any state)
    +-- NotFoundError          (referenced id does not exist)
    +-- AlreadyExistsError     (duplicate id on create)
    +-- InvalidStateError      (operation not legal from the current state)
    +-- ProcessingError        (chunking / embedding / storage failure)
    +-- PipelineError          (step-tagged wrapper with completed steps)
    +-- EmbeddingError         (embedding provider failure after retries)
    +-- VectorStoreError       (vector store read/write failure)
    |   +-- DimensionMismatchError
    +-- ExtractionError        (text extraction from a source failed)
    +-- ConfigurationError     (startup / missing config)

Services never let these escape for expected failure modes: they are returned
inside a :class:`~klay.models.result.Result`.  Providers raise them and the
nearest workflow boundary converts them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from klay.models.pipeline import PipelineStep


class KlayError(Exception):
    """Base exception for all klay errors.

    Every subclass carries a human-readable ``message``, a stable ``code``
    and an optional ``provider_name`` identifying which backend triggered
    the error.  ``__str__`` prefixes the provider name in brackets for
    structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    default_code = "KLAY_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
        code: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        self._code = code or self.default_code
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    @property
    def code(self) -> str:
        return self._code

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Domain errors (expected failure modes)
# ---------------------------------------------------------------------------

class ValidationError(KlayError):
    """Raised when a required field is missing or blank."""

    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", field: str | None = None) -> None:
        self._field = field
        super().__init__(message=message)

    @property
    def field(self) -> str | None:
        return self._field


class NotFoundError(KlayError):
    """Raised when a referenced entity does not exist."""

    default_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        self._entity = entity
        self._entity_id = entity_id
        super().__init__(message=f"{entity} '{entity_id}' not found")

    @property
    def entity(self) -> str:
        return self._entity

    @property
    def entity_id(self) -> str:
        return self._entity_id


class AlreadyExistsError(KlayError):
    """Raised when creating an entity whose id is already taken."""

    default_code = "ALREADY_EXISTS"

    def __init__(self, entity: str, entity_id: str) -> None:
        self._entity = entity
        self._entity_id = entity_id
        super().__init__(message=f"{entity} '{entity_id}' already exists")

    @property
    def entity(self) -> str:
        return self._entity

    @property
    def entity_id(self) -> str:
        return self._entity_id


class InvalidStateError(KlayError):
    """Raised when an operation is not legal from the entity's current state."""

    default_code = "INVALID_STATE"

    def __init__(
        self,
        message: str = "Operation not allowed in the current state",
        current_state: str | None = None,
    ) -> None:
        self._current_state = current_state
        super().__init__(message=message)

    @property
    def current_state(self) -> str | None:
        return self._current_state


# ---------------------------------------------------------------------------
# Workflow errors
# ---------------------------------------------------------------------------

class ProcessingError(KlayError):
    """Raised when the chunk -> embed -> store workflow fails.

    ``phase`` is one of ``"chunking"``, ``"embedding"`` or ``"storage"``
    and names the step whose call raised.
    """

    default_code = "PROCESSING_ERROR"

    def __init__(
        self,
        semantic_unit_id: str,
        message: str,
        phase: str,
        cause: BaseException | None = None,
    ) -> None:
        self._semantic_unit_id = semantic_unit_id
        self._phase = phase
        self._cause = cause
        super().__init__(
            message=f"Projection of '{semantic_unit_id}' failed during {phase}: {message}",
            code=f"PROCESSING_{phase.upper()}_FAILED",
        )

    @property
    def semantic_unit_id(self) -> str:
        return self._semantic_unit_id

    @property
    def phase(self) -> str:
        return self._phase

    @property
    def cause(self) -> BaseException | None:
        return self._cause


class PipelineError(KlayError):
    """Step-tagged failure of the knowledge pipeline.

    Carries the failing ``step``, the steps that completed before it and
    the original error's code/message so a caller can resume from the
    next step instead of restarting.
    """

    default_code = "PIPELINE_ERROR"

    def __init__(
        self,
        step: PipelineStep,
        completed_steps: Sequence[PipelineStep],
        cause_message: str,
        cause_code: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self._step = step
        self._completed_steps = list(completed_steps)
        self._cause_message = cause_message
        self._cause_code = cause_code
        self._cause = cause
        super().__init__(
            message=f"Pipeline failed at {step.value}: {cause_message}",
            code=f"PIPELINE_{step.value}_FAILED",
        )

    @classmethod
    def from_step(
        cls,
        step: PipelineStep,
        error: BaseException,
        completed_steps: Sequence[PipelineStep],
    ) -> PipelineError:
        """Wrap *error* as a failure of *step*."""
        if isinstance(error, KlayError):
            return cls(step, completed_steps, error.message, error.code, error)
        return cls(step, completed_steps, str(error) or type(error).__name__, None, error)

    @property
    def step(self) -> PipelineStep:
        return self._step

    @property
    def completed_steps(self) -> list[PipelineStep]:
        return list(self._completed_steps)

    @property
    def cause_message(self) -> str:
        return self._cause_message

    @property
    def cause_code(self) -> str | None:
        return self._cause_code

    @property
    def cause(self) -> BaseException | None:
        return self._cause


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class EmbeddingError(KlayError):
    """Raised when an embedding provider fails (after retries are exhausted)."""

    default_code = "EMBEDDING_ERROR"

    def __init__(
        self,
        message: str = "Embedding provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(KlayError):
    """Raised when a vector store operation fails."""

    default_code = "VECTOR_STORE_ERROR"

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DimensionMismatchError(VectorStoreError):
    """Raised when a vector's length differs from the store's dimension."""

    default_code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int, provider_name: str | None = None) -> None:
        self._expected = expected
        self._actual = actual
        super().__init__(
            message=f"Vector dimension mismatch: store expects {expected}, got {actual}",
            provider_name=provider_name,
        )

    @property
    def expected(self) -> int:
        return self._expected

    @property
    def actual(self) -> int:
        return self._actual


class ExtractionError(KlayError):
    """Raised when text cannot be extracted from a source URI."""

    default_code = "EXTRACTION_ERROR"

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(KlayError):
    """Raised when configuration is invalid or missing at startup."""

    default_code = "CONFIGURATION_ERROR"

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


def to_klay_error(exc: BaseException) -> KlayError:
    """Return *exc* if it is already a :class:`KlayError`, else wrap it."""
    if isinstance(exc, KlayError):
        return exc
    return KlayError(message=str(exc) or type(exc).__name__, code="UNEXPECTED_ERROR")
