"""Processing profiles: named, versioned chunking + embedding configurations.

A profile pins a chunking strategy id and an embedding strategy id (plus
their parameters) so that a projection can be reproduced later from
``(profile_id, version)``.  Lifecycle: ACTIVE -> DEPRECATED; a deprecated
profile can no longer be updated.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from klay.utils.errors import InvalidStateError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class ProfileStatus(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"


class ProcessingProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    chunking_strategy_id: str = Field(min_length=1)
    embedding_strategy_id: str = Field(min_length=1)
    configuration: dict[str, Any] = Field(default_factory=dict)
    version: int = Field(default=1, ge=1)
    status: ProfileStatus = ProfileStatus.ACTIVE
    deprecation_reason: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def update(self, **changes: Any) -> ProcessingProfile:
        """Return the next version with *changes* applied."""
        if self.status is ProfileStatus.DEPRECATED:
            raise InvalidStateError(
                f"Profile '{self.id}' is deprecated and cannot be modified",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={**changes, "version": self.version + 1, "updated_at": _utcnow()}
        )

    def deprecate(self, reason: str) -> ProcessingProfile:
        if self.status is ProfileStatus.DEPRECATED:
            raise InvalidStateError(
                f"Profile '{self.id}' is already deprecated",
                current_state=self.status.value,
            )
        return self.model_copy(
            update={
                "status": ProfileStatus.DEPRECATED,
                "deprecation_reason": reason,
                "updated_at": _utcnow(),
            }
        )
