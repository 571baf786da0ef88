"""Abstract base class for vector-store service providers.

Defines the contract for storing, querying and deleting embedded chunks.
Implementations wrap a process-local numpy store, an embedded SQLite
database, or ChromaDB.  The services never depend on a concrete backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from klay.models.vector import SearchHit, VectorEntry


# Concrete implementations (klay/providers/vector_store/):
#   InMemoryVectorStore  -- dict + numpy, process lifetime
#   SQLiteVectorStore    -- aiosqlite, brute-force cosine scan
#   ChromaDBVectorStore  -- chromadb collection in cosine space
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the projection and retrieval layers.

    All methods are async so network-backed stores do not block the event
    loop.

    **Filter syntax** (the *filters* dict of :meth:`search`): a flat mapping
    ``{metadata_key: value}``.  An entry matches when every key is present
    in its metadata with an equal value.  Filters are applied before
    ranking, so ``top_k`` always counts matching entries only.
    """

    @abstractmethod
    async def upsert(self, entries: list[VectorEntry]) -> int:
        """Insert or replace *entries* by id.

        Returns
        -------
        int
            The number of entries written.

        Raises
        ------
        klay.utils.errors.DimensionMismatchError
            If an entry's vector length differs from the store's dimension.
        """

    @abstractmethod
    async def delete(self, ids: list[str]) -> int:
        """Delete entries by id; unknown ids are ignored.  Returns the count removed."""

    @abstractmethod
    async def delete_by_owner(self, owner_id: str) -> int:
        """Delete every entry owned by *owner_id*.  Returns the count removed."""

    @abstractmethod
    async def search(
        self,
        query: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchHit]:
        """Return the *top_k* entries most similar to *query*.

        Parameters
        ----------
        query:
            The query embedding.
        top_k:
            Maximum number of hits.
        filters:
            Optional exact-match metadata filter (see class docstring).

        Returns
        -------
        list[SearchHit]
            Hits sorted by descending cosine score.  An empty store returns
            ``[]``.

        Raises
        ------
        klay.utils.errors.DimensionMismatchError
            If the store holds vectors and *query* has a different length.
        """

    @abstractmethod
    async def count(self, owner_id: str | None = None) -> int:
        """Return the number of stored entries, optionally for one owner."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the vector dimension this store accepts."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short backend identifier, e.g. ``"sqlite"``."""

    async def replace_owner(self, owner_id: str, entries: list[VectorEntry]) -> int:
        """Replace every entry of *owner_id* with *entries*.

        The default deletes then upserts.  Backends that can do both in one
        transaction override this.  Returns the number of entries written.
        """
        await self.delete_by_owner(owner_id)
        return await self.upsert(entries)
