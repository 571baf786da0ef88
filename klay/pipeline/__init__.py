"""Knowledge pipeline orchestration and progress tracking."""

from klay.pipeline.orchestrator import KnowledgePipeline
from klay.pipeline.progress_tracker import ProgressTracker

__all__ = ["KnowledgePipeline", "ProgressTracker"]
