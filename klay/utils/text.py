"""Sentence splitting and hashing helpers used by chunkers and extractors."""

from __future__ import annotations

import hashlib
import re

# Common abbreviations that should NOT trigger a sentence split.
# "Dr. Smith" should remain one sentence, not split at the period.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "Vol",
        "No",
        "vs",
        "etc",
        "approx",
        "dept",
        "est",
        "inc",
        "ltd",
        "co",
        "e.g",
        "i.e",
        "Fig",
    }
)

_SENTENCE_END = re.compile(r"[.!?]+(?:\s+|$)")


def split_sentence_spans(text: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` offsets of the sentences in *text*.

    Handles ``.``, ``!`` and ``?`` followed by whitespace or end-of-string.
    Periods after known abbreviations are masked first (same length, so
    offsets stay aligned with the original text).  Offsets exclude leading
    and trailing whitespace of each sentence.
    """
    masked = text
    for abbr in _ABBREVIATIONS:
        masked = re.sub(rf"\b{re.escape(abbr)}\.", abbr + "\x00", masked)

    spans: list[tuple[int, int]] = []
    last = 0
    for match in _SENTENCE_END.finditer(masked):
        end = match.end()
        span = strip_span(text, last, end)
        if span is not None:
            spans.append(span)
        last = end

    span = strip_span(text, last, len(text))
    if span is not None:
        spans.append(span)
    return spans


def split_sentences(text: str) -> list[str]:
    """Split *text* at sentence boundaries while respecting abbreviations."""
    return [text[start:end] for start, end in split_sentence_spans(text)]


def content_hash(text: str) -> str:
    """Return the hex SHA-256 digest of *text* encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def strip_span(text: str, start: int, end: int) -> tuple[int, int] | None:
    """Shrink ``(start, end)`` past surrounding whitespace; ``None`` if nothing is left."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return start, end
