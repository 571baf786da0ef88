"""Abstract base class for text chunking strategies.

A chunker is pure and deterministic: the same text, strategy and
parameters always produce the same ordered list of chunks.  Concrete
strategies live in :mod:`klay.providers.chunking` and are selected by id
from the ``CHUNKING_STRATEGIES`` table.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from klay.models.vector import Chunk


class IChunker(ABC):
    """Contract for splitting a text into ordered :class:`Chunk` objects."""

    #: Identifier recorded in each chunk's ``strategy`` metadata.
    strategy_id: str = ""

    @abstractmethod
    def chunk(self, text: str) -> list[Chunk]:
        """Split *text* into chunks.

        Returns
        -------
        list[Chunk]
            Chunks indexed from 0 in source order.  Empty or
            whitespace-only input yields ``[]``; no chunk has blank content.
        """

    def get_parameters(self) -> dict[str, int]:
        """Return the parameters this chunker was built with (for lineage)."""
        return {}
