"""Chunking strategies and the strategy table that selects them by id.

``CHUNKING_STRATEGIES`` is built once at import and is read-only; callers
that need a different set pass their own mapping to :func:`build_chunker`.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from klay.providers.chunking.fixed_size_chunker import FixedSizeChunker
from klay.providers.chunking.recursive_chunker import RecursiveChunker
from klay.providers.chunking.sentence_chunker import SentenceChunker
from klay.utils.errors import ConfigurationError

if TYPE_CHECKING:
    from klay.config.settings import Settings
    from klay.interfaces.chunker import IChunker

CHUNKING_STRATEGIES: Mapping[str, type[FixedSizeChunker | SentenceChunker | RecursiveChunker]] = (
    MappingProxyType(
        {
            FixedSizeChunker.strategy_id: FixedSizeChunker,
            SentenceChunker.strategy_id: SentenceChunker,
            RecursiveChunker.strategy_id: RecursiveChunker,
        }
    )
)

DEFAULT_CHUNKING_STRATEGY = RecursiveChunker.strategy_id


def build_chunker(
    strategy_id: str,
    settings: Settings,
    strategies: Mapping[str, type[FixedSizeChunker | SentenceChunker | RecursiveChunker]] = (
        CHUNKING_STRATEGIES
    ),
) -> IChunker:
    """Instantiate the chunker registered under *strategy_id*.

    Raises
    ------
    ConfigurationError
        If *strategy_id* is not in *strategies*.
    """
    try:
        chunker_cls = strategies[strategy_id]
    except KeyError:
        msg = f"Unknown chunking strategy '{strategy_id}'; known: {sorted(strategies)}"
        raise ConfigurationError(msg) from None
    return chunker_cls.from_settings(settings)


__all__ = [
    "CHUNKING_STRATEGIES",
    "DEFAULT_CHUNKING_STRATEGY",
    "FixedSizeChunker",
    "RecursiveChunker",
    "SentenceChunker",
    "build_chunker",
]
