"""Embedding providers and the strategy table that selects them by id."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from klay.providers.embedding.cohere_embedding_provider import CohereEmbeddingProvider
from klay.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from klay.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from klay.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from klay.utils.errors import ConfigurationError

if TYPE_CHECKING:
    from klay.config.settings import Settings
    from klay.interfaces.embedding_provider import IEmbeddingProvider

EMBEDDING_STRATEGIES: Mapping[str, type[IEmbeddingProvider]] = MappingProxyType(
    {
        HashEmbeddingProvider.strategy_id: HashEmbeddingProvider,
        OpenAIEmbeddingProvider.strategy_id: OpenAIEmbeddingProvider,
        NomicEmbeddingProvider.strategy_id: NomicEmbeddingProvider,
        CohereEmbeddingProvider.strategy_id: CohereEmbeddingProvider,
    }
)


def build_embedding_provider(
    strategy_id: str,
    settings: Settings,
    strategies: Mapping[str, type[IEmbeddingProvider]] = EMBEDDING_STRATEGIES,
) -> IEmbeddingProvider:
    """Instantiate the embedding provider registered under *strategy_id*.

    Raises
    ------
    ConfigurationError
        If *strategy_id* is unknown, or names a remote provider whose
        credentials are missing.
    """
    try:
        provider_cls = strategies[strategy_id]
    except KeyError:
        msg = f"Unknown embedding provider '{strategy_id}'; known: {sorted(strategies)}"
        raise ConfigurationError(msg) from None
    if strategy_id == "openai" and not settings.openai_api_key:
        raise ConfigurationError("EMBEDDING_PROVIDER=openai requires OPENAI_API_KEY")
    if strategy_id == "cohere" and not settings.cohere_api_key:
        raise ConfigurationError("EMBEDDING_PROVIDER=cohere requires COHERE_API_KEY")
    return provider_cls(settings)  # type: ignore[call-arg]


__all__ = [
    "EMBEDDING_STRATEGIES",
    "CohereEmbeddingProvider",
    "HashEmbeddingProvider",
    "NomicEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "build_embedding_provider",
]
