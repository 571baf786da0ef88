"""Sentence-grouping chunker.

Sentences are found with the abbreviation-aware splitter from
:mod:`klay.utils.text` ("Dr. Smith" stays one sentence) and packed into
chunks of at most ``max_chunk_size`` characters.  A sentence longer than
the budget cannot be split here and becomes a chunk of its own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from klay.interfaces.chunker import IChunker
from klay.models.vector import Chunk
from klay.providers.chunking.base import chunks_from_spans, require
from klay.utils.text import split_sentence_spans

if TYPE_CHECKING:
    from klay.config.settings import Settings

logger = structlog.get_logger(logger_name=__name__)


class SentenceChunker(IChunker):
    strategy_id = "sentence"

    def __init__(self, max_chunk_size: int = 1000) -> None:
        require(max_chunk_size > 0, f"max_chunk_size must be positive, got {max_chunk_size}")
        self._max_chunk_size = max_chunk_size

    @classmethod
    def from_settings(cls, settings: Settings) -> SentenceChunker:
        return cls(max_chunk_size=settings.max_chunk_size)

    def get_parameters(self) -> dict[str, int]:
        return {"max_chunk_size": self._max_chunk_size}

    def chunk(self, text: str) -> list[Chunk]:
        if not text or not text.strip():
            return []

        spans: list[tuple[int, int]] = []
        current: tuple[int, int] | None = None
        for start, end in split_sentence_spans(text):
            if current is None:
                current = (start, end)
            elif end - current[0] <= self._max_chunk_size:
                current = (current[0], end)
            else:
                spans.append(current)
                current = (start, end)
        if current is not None:
            spans.append(current)

        chunks = chunks_from_spans(text, spans, self.strategy_id)
        logger.debug("chunking_complete", strategy=self.strategy_id, num_chunks=len(chunks))
        return chunks
