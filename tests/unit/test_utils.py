"""Unit tests for klay.utils: errors, retry, similarity, text, concurrency."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import numpy as np
import pytest

from klay.models.pipeline import PipelineStep
from klay.utils.concurrency import KeyedLocks, throttled_gather
from klay.utils.errors import (
    DimensionMismatchError,
    EmbeddingError,
    KlayError,
    NotFoundError,
    PipelineError,
    ProcessingError,
    ValidationError,
    VectorStoreError,
    to_klay_error,
)
from klay.utils.retry import retry_async
from klay.utils.similarity import cosine_scores, cosine_similarity, l2_normalize
from klay.utils.text import content_hash, split_sentences, strip_span

# ======================================================================
# Errors
# ======================================================================


class TestErrors:
    def test_provider_prefix_in_str(self) -> None:
        err = EmbeddingError("Rate limit exceeded", provider_name="openai")

        assert str(err) == "[openai] Rate limit exceeded"
        assert err.message == "Rate limit exceeded"
        assert err.code == "EMBEDDING_ERROR"

    def test_not_found_message(self) -> None:
        err = NotFoundError("Source", "s1")

        assert err.message == "Source 's1' not found"
        assert err.code == "NOT_FOUND"

    def test_processing_error_code_names_phase(self) -> None:
        err = ProcessingError("u1", "timeout", phase="embedding")

        assert err.code == "PROCESSING_EMBEDDING_FAILED"
        assert err.message == "Projection of 'u1' failed during embedding: timeout"

    def test_dimension_mismatch_is_vector_store_error(self) -> None:
        err = DimensionMismatchError(expected=3, actual=4)

        assert isinstance(err, VectorStoreError)
        assert (err.expected, err.actual) == (3, 4)

    def test_pipeline_error_from_klay_error(self) -> None:
        cause = ValidationError("name is required", field="name")

        err = PipelineError.from_step(PipelineStep.INGESTION, cause, [])

        assert err.code == "PIPELINE_INGESTION_FAILED"
        assert err.cause_code == "VALIDATION_ERROR"
        assert err.cause_message == "name is required"
        assert err.cause is cause
        assert err.completed_steps == []

    def test_pipeline_error_from_plain_exception(self) -> None:
        err = PipelineError.from_step(
            PipelineStep.PROCESSING, RuntimeError(), [PipelineStep.INGESTION]
        )

        assert err.cause_code is None
        assert err.cause_message == "RuntimeError"
        assert err.completed_steps == [PipelineStep.INGESTION]

    def test_completed_steps_is_a_copy(self) -> None:
        err = PipelineError(PipelineStep.CATALOGING, [PipelineStep.INGESTION], "x")

        err.completed_steps.append(PipelineStep.PROCESSING)

        assert err.completed_steps == [PipelineStep.INGESTION]

    def test_to_klay_error(self) -> None:
        original = KlayError("known")
        wrapped = to_klay_error(ValueError("bad value"))

        assert to_klay_error(original) is original
        assert wrapped.code == "UNEXPECTED_ERROR"
        assert wrapped.message == "bad value"


# ======================================================================
# retry_async
# ======================================================================


class _Transient(Exception):
    pass


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_returns_after_transient_failures(self) -> None:
        op = AsyncMock(side_effect=[_Transient(), _Transient(), "ok"])

        with patch("klay.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await retry_async(op, retry_on=(_Transient,), max_attempts=3)

        assert result == "ok"
        assert op.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_reraises_when_exhausted(self) -> None:
        op = AsyncMock(side_effect=_Transient("still down"))

        with pytest.raises(_Transient, match="still down"):
            await retry_async(op, retry_on=(_Transient,), max_attempts=2, backoff_base=0.0)

        assert op.await_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        op = AsyncMock(side_effect=KeyError("nope"))

        with pytest.raises(KeyError):
            await retry_async(op, retry_on=(_Transient,), max_attempts=5, backoff_base=0.0)

        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_backoff_is_capped(self) -> None:
        op = AsyncMock(side_effect=[_Transient()] * 4 + ["ok"])

        with patch("klay.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await retry_async(
                op, retry_on=(_Transient,), max_attempts=5, backoff_base=1.0, backoff_max=3.0
            )

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            await retry_async(AsyncMock(), retry_on=(_Transient,), max_attempts=0)


# ======================================================================
# Similarity
# ======================================================================


class TestSimilarity:
    def test_identical_vectors(self) -> None:
        assert cosine_similarity([0.3, 0.4], [0.3, 0.4]) == pytest.approx(1.0)

    def test_opposite_and_orthogonal(self) -> None:
        assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_zero_vector_scores_zero(self) -> None:
        assert cosine_similarity([0, 0], [1, 1]) == 0.0

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError, match="differ in length"):
            cosine_similarity([1, 2], [1, 2, 3])

    def test_scores_matrix(self) -> None:
        matrix = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])

        scores = cosine_scores([2.0, 0.0], matrix)

        assert scores.tolist() == pytest.approx([1.0, 0.0, 0.0])

    def test_scores_empty_matrix(self) -> None:
        assert cosine_scores([1.0], np.zeros((0, 1))).size == 0

    def test_l2_normalize(self) -> None:
        assert l2_normalize([3.0, 4.0]) == pytest.approx([0.6, 0.8])
        assert l2_normalize([0.0, 0.0]) == [0.0, 0.0]


# ======================================================================
# Text helpers
# ======================================================================


class TestText:
    def test_split_sentences(self) -> None:
        text = "First one. Second one! Third one? Trailing fragment"

        assert split_sentences(text) == [
            "First one.",
            "Second one!",
            "Third one?",
            "Trailing fragment",
        ]

    def test_abbreviations_do_not_split(self) -> None:
        assert split_sentences("Dr. Smith arrived. He sat down.") == [
            "Dr. Smith arrived.",
            "He sat down.",
        ]

    def test_blank_text(self) -> None:
        assert split_sentences("   ") == []

    def test_content_hash(self) -> None:
        assert content_hash("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_strip_span(self) -> None:
        assert strip_span("  ab  ", 0, 6) == (2, 4)
        assert strip_span("    ", 0, 4) is None


# ======================================================================
# Concurrency
# ======================================================================


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_preserves_order_and_returns_exceptions(self) -> None:
        async def value(v: int) -> int:
            await asyncio.sleep(0.01 * (3 - v))
            return v

        async def boom() -> int:
            raise RuntimeError("boom")

        results = await throttled_gather([value(1), boom(), value(2)])

        assert results[0] == 1
        assert isinstance(results[1], RuntimeError)
        assert results[2] == 2

    @pytest.mark.asyncio
    async def test_respects_semaphore(self) -> None:
        running = 0
        peak = 0

        async def work() -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        await throttled_gather([work() for _ in range(6)], semaphore=asyncio.Semaphore(2))

        assert peak == 2


class TestKeyedLocks:
    @pytest.mark.asyncio
    async def test_same_key_is_serialised(self) -> None:
        locks = KeyedLocks()
        order: list[str] = []

        async def critical(tag: str) -> None:
            async with locks.hold("k"):
                order.append(f"{tag}-in")
                await asyncio.sleep(0.01)
                order.append(f"{tag}-out")

        await asyncio.gather(critical("a"), critical("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_locks_are_released_after_use(self) -> None:
        locks = KeyedLocks()

        async with locks.hold("k"):
            assert len(locks) == 1

        assert len(locks) == 0
