"""Retrieval result models returned by the retrieval service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RetrievalItem(BaseModel):
    """One ranked hit, flattened for callers."""

    model_config = ConfigDict(frozen=True)

    semantic_unit_id: str
    content: str
    score: float = Field(ge=-1.0, le=1.0)
    version: int = Field(default=0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_text: str
    items: list[RetrievalItem] = Field(default_factory=list)

    @property
    def total_found(self) -> int:
        return len(self.items)


class SimilarityCheck(BaseModel):
    """Answer of the duplicate-content check."""

    model_config = ConfigDict(frozen=True)

    exists: bool
    match_id: str | None = None
    score: float | None = None


class BatchSearchResult(BaseModel):
    """One entry per query of a batch search, in input order."""

    model_config = ConfigDict(frozen=True)

    query: str
    results: list[RetrievalItem] = Field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None
