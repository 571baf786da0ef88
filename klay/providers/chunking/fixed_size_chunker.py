"""Fixed-size character windows with overlap."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from klay.interfaces.chunker import IChunker
from klay.models.vector import Chunk
from klay.providers.chunking.base import chunks_from_spans, require

if TYPE_CHECKING:
    from klay.config.settings import Settings

logger = structlog.get_logger(logger_name=__name__)


class FixedSizeChunker(IChunker):
    """Slices text into windows of ``chunk_size`` characters.

    Each window starts ``chunk_size - chunk_overlap`` characters after the
    previous one.  A trailing window shorter than ``min_chunk_size`` is
    folded into the window before it, which is moved to end at the end of
    the text.  No chunk is longer than ``chunk_size``, and only a
    single-chunk result can be shorter than the minimum.
    """

    strategy_id = "fixed-size"

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        min_chunk_size: int = 50,
    ) -> None:
        require(chunk_size > 0, f"chunk_size must be positive, got {chunk_size}")
        require(chunk_overlap >= 0, f"chunk_overlap must be >= 0, got {chunk_overlap}")
        require(
            chunk_overlap < chunk_size,
            f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})",
        )
        require(min_chunk_size >= 0, f"min_chunk_size must be >= 0, got {min_chunk_size}")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._min_chunk_size = min_chunk_size

    @classmethod
    def from_settings(cls, settings: Settings) -> FixedSizeChunker:
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            min_chunk_size=settings.min_chunk_size,
        )

    def get_parameters(self) -> dict[str, int]:
        return {
            "chunk_size": self._chunk_size,
            "chunk_overlap": self._chunk_overlap,
            "min_chunk_size": self._min_chunk_size,
        }

    def chunk(self, text: str) -> list[Chunk]:
        if not text or not text.strip():
            return []

        step = self._chunk_size - self._chunk_overlap
        spans: list[tuple[int, int]] = []
        start = 0
        while start < len(text):
            end = min(start + self._chunk_size, len(text))
            spans.append((start, end))
            if end == len(text):
                break
            start += step

        if len(spans) > 1 and spans[-1][1] - spans[-1][0] < self._min_chunk_size:
            # The tail reaches past the previous window, so this start never moves back.
            spans.pop()
            spans[-1] = (len(text) - self._chunk_size, len(text))

        chunks = chunks_from_spans(text, spans, self.strategy_id)
        logger.debug("chunking_complete", strategy=self.strategy_id, num_chunks=len(chunks))
        return chunks
