"""Shared helpers for the chunking strategies."""

from __future__ import annotations

from klay.models.vector import Chunk
from klay.utils.text import strip_span


def chunks_from_spans(text: str, spans: list[tuple[int, int]], strategy: str) -> list[Chunk]:
    """Build indexed chunks from ``(start, end)`` spans of *text*.

    Each span is trimmed of surrounding whitespace; spans that are blank
    after trimming are skipped without consuming an index.
    """
    chunks: list[Chunk] = []
    for start, end in spans:
        trimmed = strip_span(text, start, end)
        if trimmed is None:
            continue
        s, e = trimmed
        chunks.append(
            Chunk(
                index=len(chunks),
                content=text[s:e],
                metadata={"strategy": strategy, "start_char": s, "end_char": e},
            )
        )
    return chunks


def require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)
