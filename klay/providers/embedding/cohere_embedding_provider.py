"""Cohere embedding provider adapter.

Calls Cohere's ``/v2/embed`` REST endpoint directly with ``httpx``
(``embed-multilingual-v3.0``, 1024 dimensions by default).  Inputs are
sent in batches of 96, the API's per-call limit.

HTTP 429 and 5xx responses, timeouts and connection failures are retried
with bounded exponential backoff; any other non-2xx response fails at
once with :class:`~klay.utils.errors.EmbeddingError`.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from klay.config.settings import Settings
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.utils.errors import EmbeddingError
from klay.utils.retry import retry_async

logger = structlog.get_logger(logger_name=__name__)

COHERE_BASE_URL = "https://api.cohere.com"
_COHERE_BATCH_LIMIT = 96

_MODEL_DIMENSIONS: dict[str, int] = {
    "embed-multilingual-v3.0": 1024,
    "embed-english-v3.0": 1024,
    "embed-multilingual-light-v3.0": 384,
    "embed-english-light-v3.0": 384,
}


class _TransientHTTPError(Exception):
    """A retryable HTTP status (429 or 5xx)."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {body[:200]}")


class CohereEmbeddingProvider(IEmbeddingProvider):
    strategy_id = "cohere"
    version = 1

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = COHERE_BASE_URL,
    ) -> None:
        self._settings = settings
        self._api_key = settings.cohere_api_key
        self._model = settings.cohere_embedding_model
        self._dimension = _MODEL_DIMENSIONS.get(self._model, settings.embedding_dimensions)
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._settings.embedding_timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        ) as client:
            for start in range(0, len(texts), _COHERE_BATCH_LIMIT):
                batch = texts[start : start + _COHERE_BATCH_LIMIT]
                all_embeddings.extend(await self._embed_batch(client, batch))
        return all_embeddings

    async def _embed_batch(self, client: httpx.AsyncClient, batch: list[str]) -> list[list[float]]:
        payload = {
            "model": self._model,
            "texts": batch,
            "input_type": "search_document",
            "embedding_types": ["float"],
        }

        async def _call() -> dict[str, Any]:
            response = await client.post("/v2/embed", json=payload)
            if response.status_code == 429 or response.status_code >= 500:
                raise _TransientHTTPError(response.status_code, response.text)
            if response.status_code >= 400:
                raise EmbeddingError(
                    message=f"Cohere API error HTTP {response.status_code}: {response.text[:200]}",
                    provider_name=self.get_provider_name(),
                )
            return response.json()

        try:
            data = await retry_async(
                _call,
                retry_on=(_TransientHTTPError, httpx.TimeoutException, httpx.TransportError),
                max_attempts=self._settings.embedding_max_retries,
                backoff_base=self._settings.embedding_backoff_base,
                operation_name="cohere_embedding.embed",
            )
        except (_TransientHTTPError, httpx.HTTPError) as exc:
            raise EmbeddingError(
                message=f"Cohere embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            vectors: list[list[float]] = data["embeddings"]["float"]
        except (KeyError, TypeError) as exc:
            raise EmbeddingError(
                message="Cohere response has no float embeddings",
                provider_name=self.get_provider_name(),
            ) from exc

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

        logger.info("embedding_batch", model=self._model, provider="cohere", batch_size=len(batch))
        return vectors

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "cohere_embedding"

    def is_available(self) -> bool:
        return bool(self._api_key)
