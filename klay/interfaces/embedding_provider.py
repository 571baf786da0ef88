"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap a deterministic local hash embedder, OpenAI
(or any OpenAI-compatible endpoint), Nomic ``nomic-embed-text`` via
Ollama, or Cohere.  Providers are interchangeable behind this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from klay.models.vector import EmbeddingResult


# Concrete implementations (klay/providers/embedding/):
#   HashEmbeddingProvider    -- deterministic feature hashing, no network
#   OpenAIEmbeddingProvider  -- text-embedding-3-small (requires API key)
#   NomicEmbeddingProvider   -- nomic-embed-text via Ollama (local)
#   CohereEmbeddingProvider  -- embed-multilingual-v3.0 via /v2/embed
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the projection workflow.

    Embeddings are consumed by
    :class:`~klay.interfaces.vector_store_provider.IVectorStoreProvider` for
    indexing and query-time similarity search.
    """

    #: Stable identifier stamped into vector metadata (``embedding_strategy``).
    strategy_id: str = ""
    #: Bumped whenever the provider's output for the same text changes.
    version: int = 1

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            batching internally if the underlying API has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        klay.utils.errors.EmbeddingError
            If the embedding call fails after retries, or the response does
            not match the configured dimension.
        """

    async def embed_single(self, text: str) -> list[float]:
        """Embed one text (e.g. a search query)."""
        vectors = await self.embed([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Embed *texts* and wrap each vector with the producing model."""
        vectors = await self.embed(texts)
        name = self.get_provider_name()
        return [
            EmbeddingResult(vector=vector, model=name, dimensions=len(vector))
            for vector in vectors
        ]

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        This value must remain constant for the lifetime of the provider
        instance and must match the dimension of the vector store.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-text-embedding-3-small"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
