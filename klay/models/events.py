"""Domain events emitted by aggregates.

Events are plain frozen records.  Aggregates collect them while a service
operation runs, and the service hands them back to the caller inside an
:class:`~klay.models.result.Outcome` -- there is no global event bus.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class DomainEvent(BaseModel):
    """Base class: every event names its aggregate and when it happened."""

    model_config = ConfigDict(frozen=True)

    aggregate_id: str
    occurred_at: datetime = Field(default_factory=_utcnow)

    @property
    def event_type(self) -> str:
        return type(self).__name__


# --- Projection -----------------------------------------------------------

class ProjectionGenerated(DomainEvent):
    semantic_unit_id: str
    semantic_unit_version: int
    chunks_count: int
    dimensions: int
    model: str


class ProjectionFailed(DomainEvent):
    semantic_unit_id: str
    semantic_unit_version: int
    reason: str
    phase: str


# --- Semantic unit --------------------------------------------------------

class SemanticUnitCreated(DomainEvent):
    source_id: str
    version: int = 1


class SemanticUnitVersioned(DomainEvent):
    previous_version: int
    new_version: int
    transformation_type: str
    reason: str


class SemanticUnitActivated(DomainEvent):
    version: int


class SemanticUnitDeprecated(DomainEvent):
    version: int
    reason: str


# --- Source ingestion -----------------------------------------------------

class SourceRegistered(DomainEvent):
    name: str
    uri: str
    source_type: str


class SourceExtracted(DomainEvent):
    job_id: str
    content_hash: str
    changed: bool


# --- Processing profile ---------------------------------------------------

class ProfileCreated(DomainEvent):
    name: str
    chunking_strategy_id: str
    embedding_strategy_id: str


class ProfileUpdated(DomainEvent):
    version: int
    changes: dict[str, Any] = Field(default_factory=dict)


class ProfileDeprecated(DomainEvent):
    version: int
    reason: str
