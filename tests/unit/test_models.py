"""Unit tests for the domain models and their state transitions."""

from __future__ import annotations

import pydantic
import pytest

from klay.models.lineage import Lineage, Transformation, TransformationType
from klay.models.profile import ProcessingProfile, ProfileStatus
from klay.models.projection import Projection, ProjectionResult, ProjectionStatus
from klay.models.result import Outcome, Result
from klay.models.retrieval import BatchSearchResult, RetrievalItem, RetrievalResult
from klay.models.semantic_unit import SemanticUnit, SemanticUnitStatus
from klay.models.source import ExtractionJob, ExtractionStatus, Source, SourceType
from klay.models.vector import Chunk, SearchHit, VectorEntry, make_vector_entry_id
from klay.utils.errors import InvalidStateError, NotFoundError


def _unit(**overrides) -> SemanticUnit:
    defaults = {"id": "u1", "source_id": "s1", "content": "body"}
    defaults.update(overrides)
    return SemanticUnit(**defaults)


def _step(input_version: int, output_version: int, unit_id: str = "u1") -> Transformation:
    return Transformation(
        semantic_unit_id=unit_id,
        type=TransformationType.ENRICHMENT,
        input_version=input_version,
        output_version=output_version,
    )


# ======================================================================
# Projection state machine
# ======================================================================


class TestProjection:
    def _result(self) -> ProjectionResult:
        return ProjectionResult(chunks_count=2, dimensions=64, model="hash-64")

    def test_new_projection_is_pending(self) -> None:
        p = Projection.create("p1", "u1", 1)

        assert p.status is ProjectionStatus.PENDING
        assert p.is_terminal is False

    def test_happy_path(self) -> None:
        p = Projection.create("p1", "u1", 1).mark_processing().complete(self._result())

        assert p.status is ProjectionStatus.COMPLETED
        assert p.result.chunks_count == 2
        assert p.is_terminal is True

    def test_fail_records_reason(self) -> None:
        p = Projection.create("p1", "u1", 1).mark_processing().fail("embedder down")

        assert p.status is ProjectionStatus.FAILED
        assert p.failure_reason == "embedder down"

    def test_cannot_complete_from_pending(self) -> None:
        with pytest.raises(InvalidStateError) as exc_info:
            Projection.create("p1", "u1", 1).complete(self._result())

        assert exc_info.value.current_state == "PENDING"

    def test_terminal_states_do_not_restart(self) -> None:
        done = Projection.create("p1", "u1", 1).mark_processing().complete(self._result())

        with pytest.raises(InvalidStateError):
            done.mark_processing()
        with pytest.raises(InvalidStateError):
            done.fail("late")

    def test_transitions_return_new_instances(self) -> None:
        pending = Projection.create("p1", "u1", 1)
        processing = pending.mark_processing()

        assert pending.status is ProjectionStatus.PENDING
        assert processing is not pending

    def test_model_is_frozen(self) -> None:
        p = Projection.create("p1", "u1", 1)

        with pytest.raises(pydantic.ValidationError):
            p.status = ProjectionStatus.COMPLETED  # type: ignore[misc]


# ======================================================================
# Semantic unit lifecycle
# ======================================================================


class TestSemanticUnit:
    def test_defaults(self) -> None:
        unit = _unit()

        assert unit.status is SemanticUnitStatus.DRAFT
        assert unit.current_version == 1

    def test_activate_then_deprecate(self) -> None:
        unit = _unit().activate().deprecate("superseded")

        assert unit.status is SemanticUnitStatus.DEPRECATED
        assert unit.deprecation_reason == "superseded"

    def test_draft_cannot_be_deprecated(self) -> None:
        draft = _unit()

        with pytest.raises(InvalidStateError):
            draft.deprecate("too early")

        assert draft.status is SemanticUnitStatus.DRAFT

    def test_activate_twice_fails(self) -> None:
        with pytest.raises(InvalidStateError):
            _unit().activate().activate()

    def test_revise_bumps_version(self) -> None:
        unit = _unit().activate().revise("new body", topics=["t"])

        assert unit.current_version == 2
        assert unit.content == "new body"
        assert unit.topics == ["t"]
        assert unit.status is SemanticUnitStatus.ACTIVE

    def test_deprecated_unit_cannot_be_revised(self) -> None:
        unit = _unit().activate().deprecate("gone")

        with pytest.raises(InvalidStateError):
            unit.revise("more")


# ======================================================================
# Lineage
# ======================================================================


class TestLineage:
    def test_empty_lineage(self) -> None:
        lineage = Lineage(semantic_unit_id="u1")

        assert lineage.latest_version == 0
        assert lineage.is_connected() is True

    def test_append_connected_chain(self) -> None:
        lineage = Lineage(semantic_unit_id="u1").append(_step(0, 1)).append(_step(1, 2))

        assert lineage.latest_version == 2
        assert lineage.is_connected() is True
        assert len(lineage.transformations) == 2

    def test_gap_is_rejected(self) -> None:
        lineage = Lineage(semantic_unit_id="u1").append(_step(0, 1))

        with pytest.raises(InvalidStateError, match="gap"):
            lineage.append(_step(2, 3))

    def test_version_must_advance(self) -> None:
        with pytest.raises(InvalidStateError, match="advance"):
            Lineage(semantic_unit_id="u1").append(_step(0, 1)).append(_step(1, 1))

    def test_foreign_unit_is_rejected(self) -> None:
        with pytest.raises(InvalidStateError):
            Lineage(semantic_unit_id="u1").append(_step(0, 1, unit_id="u2"))

    def test_append_does_not_mutate_original(self) -> None:
        original = Lineage(semantic_unit_id="u1")
        original.append(_step(0, 1))

        assert original.transformations == []

    def test_disconnected_chain_detected(self) -> None:
        lineage = Lineage(semantic_unit_id="u1", transformations=[_step(1, 2)])

        assert lineage.is_connected() is False


# ======================================================================
# Source and extraction job
# ======================================================================


class TestSource:
    def test_mime_type_follows_source_type(self) -> None:
        source = Source(id="s1", name="n", uri="/tmp/a.md", type=SourceType.MARKDOWN)

        assert source.mime_type == "text/markdown"

    def test_record_extraction_detects_change(self) -> None:
        source = Source(id="s1", name="n", uri="/tmp/a.txt", type=SourceType.PLAIN_TEXT)

        first, changed_first = source.record_extraction("abc")
        second, changed_second = first.record_extraction("abc")
        third, changed_third = second.record_extraction("def")

        assert changed_first is True
        assert changed_second is False
        assert changed_third is True
        assert third.content_hash == "def"
        assert third.last_extracted_at is not None

    @pytest.mark.parametrize("field", ["id", "name", "uri"])
    def test_blank_fields_rejected(self, field: str) -> None:
        values = {"id": "s1", "name": "n", "uri": "/x", "type": SourceType.PDF, field: ""}

        with pytest.raises(pydantic.ValidationError):
            Source(**values)


class TestExtractionJob:
    def test_complete(self) -> None:
        job = ExtractionJob(id="j1", source_id="s1").start().complete("hash")

        assert job.status is ExtractionStatus.COMPLETED
        assert job.content_hash == "hash"
        assert job.completed_at is not None

    def test_fail(self) -> None:
        job = ExtractionJob(id="j1", source_id="s1").start().fail("missing file")

        assert job.status is ExtractionStatus.FAILED
        assert job.error == "missing file"

    def test_cannot_complete_without_start(self) -> None:
        with pytest.raises(InvalidStateError):
            ExtractionJob(id="j1", source_id="s1").complete("hash")


# ======================================================================
# Processing profile
# ======================================================================


class TestProcessingProfile:
    def _profile(self) -> ProcessingProfile:
        return ProcessingProfile(
            id="p1", name="default", chunking_strategy_id="recursive", embedding_strategy_id="hash"
        )

    def test_update_bumps_version(self) -> None:
        updated = self._profile().update(name="renamed")

        assert updated.version == 2
        assert updated.name == "renamed"

    def test_deprecated_profile_is_read_only(self) -> None:
        deprecated = self._profile().deprecate("old")

        assert deprecated.status is ProfileStatus.DEPRECATED
        with pytest.raises(InvalidStateError):
            deprecated.update(name="x")
        with pytest.raises(InvalidStateError):
            deprecated.deprecate("again")


# ======================================================================
# Vector and retrieval values
# ======================================================================


class TestVectorModels:
    def test_entry_id_is_deterministic(self) -> None:
        assert make_vector_entry_id("unit-1", 3, 7) == "unit-1-3-7"

    def test_blank_chunk_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            Chunk(index=0, content="   ")

    def test_entry_dimensions(self) -> None:
        entry = VectorEntry(id="e", owner_id="o", vector=[0.1, 0.2], content="c")

        assert entry.dimensions == 2

    def test_score_out_of_range_rejected(self) -> None:
        entry = VectorEntry(id="e", owner_id="o", vector=[0.1], content="c")

        with pytest.raises(pydantic.ValidationError):
            SearchHit(entry=entry, score=1.5)


class TestRetrievalModels:
    def test_total_found(self) -> None:
        result = RetrievalResult(
            query_text="q",
            items=[RetrievalItem(semantic_unit_id="u", content="c", score=0.5)],
        )

        assert result.total_found == 1

    def test_batch_search_success_flag(self) -> None:
        assert BatchSearchResult(query="q").success is True
        assert BatchSearchResult(query="q", error="boom").success is False


# ======================================================================
# Result / Outcome
# ======================================================================


class TestResult:
    def test_ok(self) -> None:
        result = Result.ok(42)

        assert result.is_ok() is True
        assert result.value == 42
        assert result.unwrap() == 42
        with pytest.raises(ValueError):
            _ = result.error

    def test_fail(self) -> None:
        error = NotFoundError("Thing", "t1")
        result = Result.fail(error)

        assert result.is_fail() is True
        assert result.error is error
        with pytest.raises(ValueError):
            _ = result.value
        with pytest.raises(NotFoundError):
            result.unwrap()

    def test_outcome_delegates(self) -> None:
        outcome = Outcome(Result.ok("v"))

        assert outcome.is_ok() is True
        assert outcome.value == "v"
        assert outcome.events == []
