"""Application services: projection, semantic knowledge, retrieval, sources, profiles."""

from klay.services.profile_service import ProfileService
from klay.services.projection_service import ProjectionService
from klay.services.retrieval_service import RetrievalService
from klay.services.semantic_knowledge_service import SemanticKnowledgeService
from klay.services.source_ingestion_service import SourceIngestionService

__all__ = [
    "ProfileService",
    "ProjectionService",
    "RetrievalService",
    "SemanticKnowledgeService",
    "SourceIngestionService",
]
