"""Processing profiles: named, versioned chunking + embedding configurations.

Strategy ids are checked against the chunking and embedding strategy
tables the service is built with, so a profile can never name a strategy
the running process cannot instantiate.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from klay.interfaces.repositories import IProcessingProfileRepository
from klay.models.events import ProfileCreated, ProfileDeprecated, ProfileUpdated
from klay.models.profile import ProcessingProfile
from klay.models.result import Outcome, Result
from klay.utils.concurrency import KeyedLocks
from klay.utils.errors import (
    AlreadyExistsError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(logger_name=__name__)

_UPDATABLE_FIELDS = frozenset(
    {"name", "chunking_strategy_id", "embedding_strategy_id", "configuration"}
)


class ProfileService:
    def __init__(
        self,
        repository: IProcessingProfileRepository,
        chunking_strategies: Mapping[str, Any],
        embedding_strategies: Mapping[str, Any],
    ) -> None:
        self._repository = repository
        self._chunking_strategies = chunking_strategies
        self._embedding_strategies = embedding_strategies
        self._locks = KeyedLocks()

    async def create_profile(
        self,
        profile_id: str,
        name: str,
        chunking_strategy_id: str,
        embedding_strategy_id: str,
        configuration: dict[str, Any] | None = None,
    ) -> Outcome[ProcessingProfile]:
        for field, value in (("profile_id", profile_id), ("name", name)):
            if not value or not value.strip():
                return Outcome(Result.fail(ValidationError(f"{field} is required", field=field)))
        invalid = self._check_strategies(chunking_strategy_id, embedding_strategy_id)
        if invalid is not None:
            return Outcome(Result.fail(invalid))

        async with self._locks.hold(profile_id):
            if await self._repository.exists(profile_id):
                return Outcome(Result.fail(AlreadyExistsError("ProcessingProfile", profile_id)))
            profile = ProcessingProfile(
                id=profile_id,
                name=name,
                chunking_strategy_id=chunking_strategy_id,
                embedding_strategy_id=embedding_strategy_id,
                configuration=dict(configuration or {}),
            )
            await self._repository.save(profile)

        logger.info(
            "profile_created",
            profile_id=profile_id,
            chunking=chunking_strategy_id,
            embedding=embedding_strategy_id,
        )
        return Outcome(
            Result.ok(profile),
            [
                ProfileCreated(
                    aggregate_id=profile_id,
                    name=name,
                    chunking_strategy_id=chunking_strategy_id,
                    embedding_strategy_id=embedding_strategy_id,
                )
            ],
        )

    async def update_profile(self, profile_id: str, **changes: Any) -> Outcome[ProcessingProfile]:
        """Apply *changes* and bump the profile version."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            return Outcome(
                Result.fail(ValidationError(f"Cannot update fields: {sorted(unknown)}"))
            )
        if "name" in changes and not str(changes["name"]).strip():
            return Outcome(Result.fail(ValidationError("name is required", field="name")))

        async with self._locks.hold(profile_id):
            profile = await self._repository.get(profile_id)
            if profile is None:
                return Outcome(Result.fail(NotFoundError("ProcessingProfile", profile_id)))
            invalid = self._check_strategies(
                changes.get("chunking_strategy_id", profile.chunking_strategy_id),
                changes.get("embedding_strategy_id", profile.embedding_strategy_id),
            )
            if invalid is not None:
                return Outcome(Result.fail(invalid))
            try:
                updated = profile.update(**changes)
            except InvalidStateError as exc:
                return Outcome(Result.fail(exc))
            await self._repository.save(updated)

        logger.info("profile_updated", profile_id=profile_id, version=updated.version)
        return Outcome(
            Result.ok(updated),
            [ProfileUpdated(aggregate_id=profile_id, version=updated.version, changes=changes)],
        )

    async def deprecate_profile(self, profile_id: str, reason: str) -> Outcome[ProcessingProfile]:
        if not reason or not reason.strip():
            return Outcome(Result.fail(ValidationError("reason is required", field="reason")))

        async with self._locks.hold(profile_id):
            profile = await self._repository.get(profile_id)
            if profile is None:
                return Outcome(Result.fail(NotFoundError("ProcessingProfile", profile_id)))
            try:
                deprecated = profile.deprecate(reason)
            except InvalidStateError as exc:
                return Outcome(Result.fail(exc))
            await self._repository.save(deprecated)

        logger.info("profile_deprecated", profile_id=profile_id, reason=reason)
        return Outcome(
            Result.ok(deprecated),
            [ProfileDeprecated(aggregate_id=profile_id, version=deprecated.version, reason=reason)],
        )

    async def get_profile(self, profile_id: str) -> Result[ProcessingProfile]:
        profile = await self._repository.get(profile_id)
        if profile is None:
            return Result.fail(NotFoundError("ProcessingProfile", profile_id))
        return Result.ok(profile)

    def _check_strategies(
        self, chunking_strategy_id: str, embedding_strategy_id: str
    ) -> ValidationError | None:
        if chunking_strategy_id not in self._chunking_strategies:
            return ValidationError(
                f"Unknown chunking strategy '{chunking_strategy_id}'",
                field="chunking_strategy_id",
            )
        if embedding_strategy_id not in self._embedding_strategies:
            return ValidationError(
                f"Unknown embedding strategy '{embedding_strategy_id}'",
                field="embedding_strategy_id",
            )
        return None
