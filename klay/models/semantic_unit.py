"""Semantic unit: the versioned, lifecycle-managed canonical knowledge record.

Status lifecycle (no transition is reversible)::

    DRAFT --activate--> ACTIVE --deprecate(reason)--> DEPRECATED

A DRAFT unit cannot be deprecated directly.  Content revisions bump
``current_version`` in place via :meth:`SemanticUnit.revise`; the service
layer records the matching lineage transformation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from klay.utils.errors import InvalidStateError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class SemanticUnitStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"


class SemanticUnit(BaseModel):
    """The canonical knowledge record derived from a source."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    source_id: str = Field(min_length=1)
    source_type: str | None = None
    current_version: int = Field(default=1, ge=1)
    status: SemanticUnitStatus = SemanticUnitStatus.DRAFT
    content: str
    language: str = "en"
    topics: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    summary: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_by: str = "system"
    deprecation_reason: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def revise(
        self,
        content: str,
        topics: list[str] | None = None,
        summary: str | None = None,
    ) -> SemanticUnit:
        """Return the next version with the given content (and optional metadata)."""
        if self.status is SemanticUnitStatus.DEPRECATED:
            raise InvalidStateError(
                f"Semantic unit '{self.id}' is deprecated and cannot be versioned",
                current_state=self.status.value,
            )
        update: dict[str, Any] = {
            "content": content,
            "current_version": self.current_version + 1,
            "updated_at": _utcnow(),
        }
        if topics is not None:
            update["topics"] = list(topics)
        if summary is not None:
            update["summary"] = summary
        return self.model_copy(update=update)

    def activate(self) -> SemanticUnit:
        if self.status is not SemanticUnitStatus.DRAFT:
            raise InvalidStateError(
                f"Only draft units can be activated; '{self.id}' is {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={"status": SemanticUnitStatus.ACTIVE, "updated_at": _utcnow()}
        )

    def deprecate(self, reason: str) -> SemanticUnit:
        if self.status is not SemanticUnitStatus.ACTIVE:
            raise InvalidStateError(
                f"Only active units can be deprecated; '{self.id}' is {self.status.value}",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={
                "status": SemanticUnitStatus.DEPRECATED,
                "deprecation_reason": reason,
                "updated_at": _utcnow(),
            }
        )
