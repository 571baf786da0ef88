"""Chunk, embedding and vector-store data models.

Defines Pydantic v2 models for the values that flow between the chunker,
the embedder and the vector store.  All models use frozen config.

Flow:
    1. CHUNKING: a chunker splits text into ordered :class:`Chunk` objects.
    2. EMBEDDING: an embedding provider maps chunk contents to
       :class:`EmbeddingResult` vectors of one fixed dimension.
    3. STORAGE: the projection workflow pairs them into
       :class:`VectorEntry` records with deterministic ids and upserts them.
    4. RETRIEVAL: the vector store answers queries with :class:`SearchHit`
       objects ranked by cosine similarity.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Chunk(BaseModel):
    """One ordered segment of a larger text.

    ``index`` is 0-based and stable for a given (text, strategy, parameters)
    triple.  Chunks are never persisted on their own, only as part of a
    projection's vector entries.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="0-based position of the chunk in its source text.")
    content: str = Field(min_length=1, description="The chunk's textual content.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Strategy name and character offsets into the source text.",
    )

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk content must not be blank")
        return value


class EmbeddingResult(BaseModel):
    """A single embedding vector with the model that produced it."""

    model_config = ConfigDict(frozen=True)

    vector: list[float]
    model: str
    dimensions: int = Field(ge=0)


def make_vector_entry_id(owner_id: str, version: int, chunk_index: int) -> str:
    """Deterministic entry id so re-processing (owner, version) upserts in place."""
    return f"{owner_id}-{version}-{chunk_index}"


class VectorEntry(BaseModel):
    """A stored embedding: ``(id, owner_id, vector, content, metadata)``.

    Owned by the vector store; mutated only via upsert/delete and deleted
    in bulk when its owner is re-projected or removed.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    owner_id: str = Field(min_length=1, description="Semantic unit id that owns this entry.")
    vector: list[float]
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def dimensions(self) -> int:
        return len(self.vector)


class SearchHit(BaseModel):
    """A vector entry returned from a similarity search with its score."""

    model_config = ConfigDict(frozen=True)

    entry: VectorEntry
    score: float = Field(ge=-1.0, le=1.0, description="Cosine similarity to the query.")
