"""Semantic unit lifecycle and lineage ledger.

Every write to a unit (create, version, activate, deprecate) runs under a
per-unit lock so that the unit record and its lineage advance together:
two concurrent ``version_unit`` calls on the same unit produce versions
``n+1`` and ``n+2`` with a connected chain, never two ``n+1``.
"""

from __future__ import annotations

from typing import Any

import structlog

from klay.interfaces.repositories import ILineageRepository, ISemanticUnitRepository
from klay.models.events import (
    SemanticUnitActivated,
    SemanticUnitCreated,
    SemanticUnitDeprecated,
    SemanticUnitVersioned,
)
from klay.models.lineage import Lineage, Transformation, TransformationType
from klay.models.result import Outcome, Result
from klay.models.semantic_unit import SemanticUnit
from klay.utils.concurrency import KeyedLocks
from klay.utils.errors import (
    AlreadyExistsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(logger_name=__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class SemanticKnowledgeService:
    def __init__(
        self,
        unit_repository: ISemanticUnitRepository,
        lineage_repository: ILineageRepository,
    ) -> None:
        self._units = unit_repository
        self._lineages = lineage_repository
        self._locks = KeyedLocks()

    async def create_unit(
        self,
        unit_id: str,
        source_id: str,
        content: str,
        source_type: str | None = None,
        language: str = "en",
        topics: list[str] | None = None,
        tags: list[str] | None = None,
        summary: str | None = None,
        attributes: dict[str, Any] | None = None,
        created_by: str = "system",
        strategy_used: str | None = None,
    ) -> Outcome[SemanticUnit]:
        """Create a DRAFT unit at version 1 with an EXTRACTION ``0 -> 1`` lineage entry."""
        for field, value in (("unit_id", unit_id), ("source_id", source_id), ("content", content)):
            if _blank(value):
                return Outcome(Result.fail(ValidationError(f"{field} is required", field=field)))

        async with self._locks.hold(unit_id):
            if await self._units.exists(unit_id):
                return Outcome(Result.fail(AlreadyExistsError("SemanticUnit", unit_id)))

            unit = SemanticUnit(
                id=unit_id,
                source_id=source_id,
                source_type=source_type,
                content=content,
                language=language,
                topics=list(topics or []),
                tags=list(tags or []),
                summary=summary,
                attributes=dict(attributes or {}),
                created_by=created_by,
            )
            lineage = Lineage(semantic_unit_id=unit_id).append(
                Transformation(
                    semantic_unit_id=unit_id,
                    type=TransformationType.EXTRACTION,
                    input_version=0,
                    output_version=unit.current_version,
                    strategy_used=strategy_used,
                    reason="Initial extraction",
                )
            )
            await self._units.save(unit)
            await self._lineages.save(lineage)

        logger.info("semantic_unit_created", unit_id=unit_id, source_id=source_id)
        return Outcome(
            Result.ok(unit),
            [SemanticUnitCreated(aggregate_id=unit_id, source_id=source_id, version=1)],
        )

    async def version_unit(
        self,
        unit_id: str,
        content: str,
        transformation_type: TransformationType,
        reason: str,
        strategy_used: str | None = None,
        parameters: dict[str, Any] | None = None,
        topics: list[str] | None = None,
        summary: str | None = None,
    ) -> Outcome[SemanticUnit]:
        """Record a new version of *unit_id* and append the matching transformation."""
        if _blank(content):
            return Outcome(Result.fail(ValidationError("content is required", field="content")))

        async with self._locks.hold(unit_id):
            unit = await self._units.get(unit_id)
            if unit is None:
                return Outcome(Result.fail(NotFoundError("SemanticUnit", unit_id)))
            lineage = await self._lineages.get(unit_id)
            if lineage is None:
                return Outcome(Result.fail(NotFoundError("Lineage", unit_id)))

            try:
                revised = unit.revise(content, topics=topics, summary=summary)
                new_lineage = lineage.append(
                    Transformation(
                        semantic_unit_id=unit_id,
                        type=transformation_type,
                        input_version=unit.current_version,
                        output_version=revised.current_version,
                        strategy_used=strategy_used,
                        parameters=dict(parameters or {}),
                        reason=reason,
                    )
                )
            except InvalidStateError as exc:
                return Outcome(Result.fail(exc))

            await self._units.save(revised)
            await self._lineages.save(new_lineage)

        logger.info(
            "semantic_unit_versioned",
            unit_id=unit_id,
            previous_version=unit.current_version,
            new_version=revised.current_version,
            transformation=transformation_type.value,
        )
        return Outcome(
            Result.ok(revised),
            [
                SemanticUnitVersioned(
                    aggregate_id=unit_id,
                    previous_version=unit.current_version,
                    new_version=revised.current_version,
                    transformation_type=transformation_type.value,
                    reason=reason,
                )
            ],
        )

    async def activate_unit(self, unit_id: str) -> Outcome[SemanticUnit]:
        """Move a DRAFT unit to ACTIVE."""
        async with self._locks.hold(unit_id):
            unit = await self._units.get(unit_id)
            if unit is None:
                return Outcome(Result.fail(NotFoundError("SemanticUnit", unit_id)))
            try:
                activated = unit.activate()
            except InvalidStateError as exc:
                return Outcome(Result.fail(exc))
            await self._units.save(activated)

        logger.info("semantic_unit_activated", unit_id=unit_id, version=activated.current_version)
        return Outcome(
            Result.ok(activated),
            [SemanticUnitActivated(aggregate_id=unit_id, version=activated.current_version)],
        )

    async def deprecate_unit(self, unit_id: str, reason: str) -> Outcome[SemanticUnit]:
        """Move an ACTIVE unit to DEPRECATED.  A DRAFT unit is left unchanged."""
        if _blank(reason):
            return Outcome(Result.fail(ValidationError("reason is required", field="reason")))

        async with self._locks.hold(unit_id):
            unit = await self._units.get(unit_id)
            if unit is None:
                return Outcome(Result.fail(NotFoundError("SemanticUnit", unit_id)))
            try:
                deprecated = unit.deprecate(reason)
            except InvalidStateError as exc:
                return Outcome(Result.fail(exc))
            await self._units.save(deprecated)

        logger.info("semantic_unit_deprecated", unit_id=unit_id, reason=reason)
        return Outcome(
            Result.ok(deprecated),
            [
                SemanticUnitDeprecated(
                    aggregate_id=unit_id, version=deprecated.current_version, reason=reason
                )
            ],
        )

    async def get_unit(self, unit_id: str) -> Result[SemanticUnit]:
        unit = await self._units.get(unit_id)
        if unit is None:
            return Result.fail(NotFoundError("SemanticUnit", unit_id))
        return Result.ok(unit)

    async def get_lineage(self, unit_id: str) -> Result[Lineage]:
        lineage = await self._lineages.get(unit_id)
        if lineage is None:
            return Result.fail(NotFoundError("Lineage", unit_id))
        return Result.ok(lineage)

    async def list_units(self) -> list[SemanticUnit]:
        return await self._units.list_all()
