"""Lineage ledger: the append-only transformation history of a semantic unit.

Every version change of a :class:`~klay.models.semantic_unit.SemanticUnit`
is recorded as a :class:`Transformation` ``(input_version -> output_version)``.
The ledger is a connected chain: the first transformation starts at
version 0, and each transformation's ``input_version`` equals the previous
one's ``output_version``.  :meth:`Lineage.append` enforces this and never
mutates or removes existing entries.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from klay.utils.errors import InvalidStateError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class TransformationType(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    EXTRACTION = "EXTRACTION"
    ENRICHMENT = "ENRICHMENT"
    CHUNKING = "CHUNKING"
    EMBEDDING = "EMBEDDING"
    MERGE = "MERGE"
    SPLIT = "SPLIT"
    REPROCESSING = "REPROCESSING"


class Transformation(BaseModel):
    """One step of a unit's history."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    semantic_unit_id: str = Field(min_length=1)
    type: TransformationType
    input_version: int = Field(ge=0)
    output_version: int = Field(ge=1)
    strategy_used: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    reason: str | None = None
    occurred_at: datetime = Field(default_factory=_utcnow)


class Lineage(BaseModel):
    """Ordered transformations for one semantic unit."""

    model_config = ConfigDict(frozen=True)

    semantic_unit_id: str = Field(min_length=1)
    transformations: list[Transformation] = Field(default_factory=list)

    @property
    def latest_version(self) -> int:
        if not self.transformations:
            return 0
        return self.transformations[-1].output_version

    def append(self, transformation: Transformation) -> Lineage:
        """Return a new ledger with *transformation* appended.

        Raises
        ------
        InvalidStateError
            If the transformation belongs to another unit, does not start
            where the chain ends, or does not advance the version.
        """
        if transformation.semantic_unit_id != self.semantic_unit_id:
            raise InvalidStateError(
                f"Transformation for '{transformation.semantic_unit_id}' cannot be "
                f"recorded in the lineage of '{self.semantic_unit_id}'"
            )
        if transformation.input_version != self.latest_version:
            raise InvalidStateError(
                f"Lineage gap for '{self.semantic_unit_id}': chain ends at version "
                f"{self.latest_version}, transformation starts at "
                f"{transformation.input_version}",
                current_state=str(self.latest_version),
            )
        if transformation.output_version <= transformation.input_version:
            raise InvalidStateError(
                f"Transformation must advance the version "
                f"({transformation.input_version} -> {transformation.output_version})"
            )
        return self.model_copy(
            update={"transformations": [*self.transformations, transformation]}
        )

    def is_connected(self) -> bool:
        """Return ``True`` when the chain starts at 0 and has no gaps."""
        expected = 0
        for t in self.transformations:
            if t.input_version != expected:
                return False
            expected = t.output_version
        return True
