"""Nomic embedding provider adapter (local/free via Ollama).

Talks to the Ollama OpenAI-compatible ``/v1`` endpoint using
``nomic-embed-text`` (768 dimensions).  Runs locally with no API key.
Retry and dimension checking come from :class:`OpenAIEmbeddingProvider`.
"""

from __future__ import annotations

import httpx
import openai

from klay.config.settings import Settings
from klay.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

_OLLAMA_BATCH_LIMIT = 512


class NomicEmbeddingProvider(OpenAIEmbeddingProvider):
    strategy_id = "nomic"
    version = 1
    _batch_limit = _OLLAMA_BATCH_LIMIT

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._api_key = "ollama"  # Ollama doesn't require a real key
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key=self._api_key,
            timeout=settings.embedding_timeout,
            max_retries=0,
        )
        self._model = "nomic-embed-text"
        self._dimension = 768
        self._provider_label = "nomic_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server is reachable."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
