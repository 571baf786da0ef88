"""Abstract interfaces (ports) between klay's services and its providers."""

from klay.interfaces.cache_provider import ICacheProvider
from klay.interfaces.chunker import IChunker
from klay.interfaces.embedding_provider import IEmbeddingProvider
from klay.interfaces.repositories import (
    IExtractionJobRepository,
    ILineageRepository,
    IProcessingProfileRepository,
    IProjectionRepository,
    IRepository,
    ISemanticUnitRepository,
    ISourceRepository,
)
from klay.interfaces.text_extractor import ITextExtractor
from klay.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "ICacheProvider",
    "IChunker",
    "IEmbeddingProvider",
    "IExtractionJobRepository",
    "ILineageRepository",
    "IProcessingProfileRepository",
    "IProjectionRepository",
    "IRepository",
    "ISemanticUnitRepository",
    "ISourceRepository",
    "ITextExtractor",
    "IVectorStoreProvider",
]
