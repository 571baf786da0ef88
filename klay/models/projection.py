"""Projection aggregate: one chunk + embed + store run for a unit version.

The status field is a small state machine::

    PENDING --start--> PROCESSING --complete--> COMPLETED
                                   --fail------> FAILED

COMPLETED and FAILED are terminal.  A failed projection is never retried
in place -- the caller creates a new projection with a new id.

The model is frozen: every transition returns a new instance via
``model_copy(update={...})`` and raises
:class:`~klay.utils.errors.InvalidStateError` when the transition is not
legal from the current status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from klay.utils.errors import InvalidStateError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class ProjectionType(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """What kind of derived artefact a projection produces."""

    EMBEDDING = "EMBEDDING"
    SUMMARY = "SUMMARY"
    KEYWORDS = "KEYWORDS"


class ProjectionStatus(str, Enum):  # noqa: UP042
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProjectionResult(BaseModel):
    """Summary attached to a projection when it completes."""

    model_config = ConfigDict(frozen=True)

    chunks_count: int = Field(ge=0)
    dimensions: int = Field(ge=0)
    model: str
    # Stamped so that vectors from an older embedder version can be found
    # and re-embedded later.
    strategy_id: str = ""
    strategy_version: int = Field(default=1, ge=1)


class GenerateProjectionCommand(BaseModel):
    """Input of :meth:`ProjectionService.generate`.

    Not validated on construction: blank ids and content are reported as
    a ``ValidationError`` result by the service, before any state exists.
    """

    model_config = ConfigDict(frozen=True)

    projection_id: str
    semantic_unit_id: str
    semantic_unit_version: int = 1
    content: str
    type: ProjectionType = ProjectionType.EMBEDDING


class ProjectionSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    projection_id: str
    chunks_count: int
    dimensions: int
    model: str


class Projection(BaseModel):
    """The record of one chunk+embed+store run for one semantic unit version."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    semantic_unit_id: str = Field(min_length=1)
    semantic_unit_version: int = Field(ge=0)
    type: ProjectionType = ProjectionType.EMBEDDING
    status: ProjectionStatus = ProjectionStatus.PENDING
    result: ProjectionResult | None = None
    failure_reason: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        projection_id: str,
        semantic_unit_id: str,
        semantic_unit_version: int,
        projection_type: ProjectionType = ProjectionType.EMBEDDING,
    ) -> Projection:
        return cls(
            id=projection_id,
            semantic_unit_id=semantic_unit_id,
            semantic_unit_version=semantic_unit_version,
            type=projection_type,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProjectionStatus.COMPLETED, ProjectionStatus.FAILED)

    def mark_processing(self) -> Projection:
        if self.status is not ProjectionStatus.PENDING:
            raise InvalidStateError(
                f"Projection '{self.id}' cannot start from {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={"status": ProjectionStatus.PROCESSING, "updated_at": _utcnow()}
        )

    def complete(self, result: ProjectionResult) -> Projection:
        if self.status is not ProjectionStatus.PROCESSING:
            raise InvalidStateError(
                f"Projection '{self.id}' cannot complete from {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={
                "status": ProjectionStatus.COMPLETED,
                "result": result,
                "updated_at": _utcnow(),
            }
        )

    def fail(self, reason: str) -> Projection:
        if self.status is not ProjectionStatus.PROCESSING:
            raise InvalidStateError(
                f"Projection '{self.id}' cannot fail from {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={
                "status": ProjectionStatus.FAILED,
                "failure_reason": reason,
                "updated_at": _utcnow(),
            }
        )
