"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible providers (TogetherAI,
Fireworks, a local Ollama) via custom ``base_url`` and model name settings.

Transient failures (timeouts, connection errors, rate limits, 5xx) are
retried with bounded exponential backoff; the SDK's own retry loop is
disabled so that the attempt budget comes from settings alone.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from klay.config.settings import Settings
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.utils.errors import EmbeddingError
from klay.utils.retry import retry_async

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "nomic-embed-text": 768,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}

_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  When
    ``openai_base_url`` is configured the client points at that URL and
    uses ``openai_embedding_model`` if set.  Handles automatic batching
    for inputs exceeding the per-call limit.
    """

    strategy_id = "openai"
    version = 1
    _batch_limit = _OPENAI_BATCH_LIMIT

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        # Build client kwargs -- add base_url only when configured.
        client_kwargs: dict[str, Any] = {
            "api_key": self._api_key,
            "timeout": settings.embedding_timeout,
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        # The SDK refuses to build a client without credentials.
        self._client: openai.AsyncOpenAI | None = (
            openai.AsyncOpenAI(**client_kwargs) if self._api_key else None
        )
        self._model = settings.openai_embedding_model or "text-embedding-3-small"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, settings.embedding_dimensions)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Raises
        ------
        EmbeddingError
            On a non-transient API error, when retries are exhausted, or
            when the returned vectors do not have :meth:`get_dimension`
            components.
        """
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self._batch_limit):
            batch = texts[start : start + self._batch_limit]
            all_embeddings.extend(await self._embed_batch_with_retry(batch))
        return all_embeddings

    async def _embed_batch_with_retry(self, batch: list[str]) -> list[list[float]]:
        client = self._client
        if client is None:
            raise EmbeddingError(
                message="No API key configured",
                provider_name=self.get_provider_name(),
            )

        async def _call() -> Any:
            return await client.embeddings.create(input=batch, model=self._model)

        try:
            response = await retry_async(
                _call,
                retry_on=_TRANSIENT_ERRORS,
                max_attempts=self._settings.embedding_max_retries,
                backoff_base=self._settings.embedding_backoff_base,
                operation_name=f"{self._provider_label}.embed",
            )
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        vectors = [item.embedding for item in response.data]
        self._check_response(batch, vectors)
        logger.info(
            "embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(batch),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return vectors

    def _check_response(self, batch: list[str], vectors: list[list[float]]) -> None:
        if len(vectors) != len(batch):
            raise EmbeddingError(
                message=f"Expected {len(batch)} embeddings, got {len(vectors)}",
                provider_name=self.get_provider_name(),
            )
        for vector in vectors:
            if len(vector) != self._dimension:
                raise EmbeddingError(
                    message=(
                        f"Model {self._model} returned {len(vector)} dimensions, "
                        f"expected {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
