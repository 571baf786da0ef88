"""Recursive separator-based chunker (the default strategy).

The algorithm works in two phases:

1. **Split** -- cut the text on the highest-priority separator present
   (paragraph break, line break, sentence end, space).  Any fragment still
   longer than ``chunk_size`` is split again with the next separator, down
   to single characters as a last resort.  Separators stay attached to the
   fragment before them, so fragments tile the text exactly.
2. **Merge** -- greedily pack adjacent fragments into chunks of at most
   ``chunk_size`` characters.  When a chunk is flushed, its tail fragments
   (up to ``chunk_overlap`` characters) start the next chunk so concepts
   spanning a boundary appear in both.

Whole words are never cut unless a single word exceeds ``chunk_size``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from klay.interfaces.chunker import IChunker
from klay.models.vector import Chunk
from klay.providers.chunking.base import chunks_from_spans, require

if TYPE_CHECKING:
    from klay.config.settings import Settings

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")

_Span = tuple[int, int]


class RecursiveChunker(IChunker):
    """Splits on a separator hierarchy and merges fragments with overlap.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk.
    chunk_overlap:
        Maximum characters of the previous chunk repeated at the start of
        the next one.
    separators:
        Separators in priority order; ``""`` means "split anywhere".
    """

    strategy_id = "recursive"

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: tuple[str, ...] = DEFAULT_SEPARATORS,
    ) -> None:
        require(chunk_size > 0, f"chunk_size must be positive, got {chunk_size}")
        require(chunk_overlap >= 0, f"chunk_overlap must be >= 0, got {chunk_overlap}")
        require(
            chunk_overlap < chunk_size,
            f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})",
        )
        require(bool(separators), "separators must not be empty")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        # Always able to fall back to character splitting.
        self._separators = separators if separators[-1] == "" else (*separators, "")

    @classmethod
    def from_settings(cls, settings: Settings) -> RecursiveChunker:
        return cls(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap)

    def get_parameters(self) -> dict[str, int]:
        return {"chunk_size": self._chunk_size, "chunk_overlap": self._chunk_overlap}

    def chunk(self, text: str) -> list[Chunk]:
        if not text or not text.strip():
            return []

        fragments = self._split(text, 0, len(text), self._separators)
        spans = self._merge(fragments)
        chunks = chunks_from_spans(text, spans, self.strategy_id)
        logger.debug(
            "chunking_complete",
            strategy=self.strategy_id,
            num_chunks=len(chunks),
            num_fragments=len(fragments),
        )
        return chunks

    # ------------------------------------------------------------------
    # Phase 1: split
    # ------------------------------------------------------------------

    def _split(self, text: str, start: int, end: int, separators: tuple[str, ...]) -> list[_Span]:
        if end - start <= self._chunk_size:
            return [(start, end)]

        for i, sep in enumerate(separators):
            if sep == "" or text.find(sep, start, end) != -1:
                remaining = separators[i + 1 :]
                break
        else:  # pragma: no cover - "" always matches
            sep, remaining = "", ()

        if sep == "":
            return [
                (pos, min(pos + self._chunk_size, end))
                for pos in range(start, end, self._chunk_size)
            ]

        pieces: list[_Span] = []
        pos = start
        while pos < end:
            idx = text.find(sep, pos, end)
            cut = end if idx == -1 else idx + len(sep)
            pieces.append((pos, cut))
            pos = cut

        fragments: list[_Span] = []
        for piece_start, piece_end in pieces:
            if piece_end - piece_start > self._chunk_size:
                fragments.extend(self._split(text, piece_start, piece_end, remaining))
            else:
                fragments.append((piece_start, piece_end))
        return fragments

    # ------------------------------------------------------------------
    # Phase 2: merge with overlap
    # ------------------------------------------------------------------

    def _merge(self, fragments: list[_Span]) -> list[_Span]:
        spans: list[_Span] = []
        current: list[_Span] = []

        for fragment in fragments:
            if current and fragment[1] - current[0][0] > self._chunk_size:
                spans.append((current[0][0], current[-1][1]))
                current = self._overlap_tail(current, fragment)
            current.append(fragment)

        if current:
            spans.append((current[0][0], current[-1][1]))
        return spans

    def _overlap_tail(self, parts: list[_Span], incoming: _Span) -> list[_Span]:
        """Return tail fragments of *parts* worth carrying into the next chunk.

        The tail holds at most ``chunk_overlap`` characters and leaves room
        for *incoming* within ``chunk_size``.
        """
        tail: list[_Span] = []
        for part in reversed(parts):
            new_start = part[0]
            if parts[-1][1] - new_start > self._chunk_overlap:
                break
            if incoming[1] - new_start > self._chunk_size:
                break
            tail.insert(0, part)
        return tail
