"""Vector store backends.

The ChromaDB backend is imported lazily by the composition root so that
the in-memory and embedded deployments do not import chromadb.
"""

from klay.providers.vector_store.memory_vector_store import InMemoryVectorStore
from klay.providers.vector_store.sqlite_vector_store import SQLiteVectorStore

__all__ = ["InMemoryVectorStore", "SQLiteVectorStore"]
