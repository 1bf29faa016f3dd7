"""
podgen Services Layer.

Business logic between the API/CLI and the stage collaborators.

Components:
    - pipeline.py: PipelineOrchestrator (stage sequencing + stage cache)
    - history.py: EpisodeRecordStore (durable finished-episode records)
    - validators.py: Input validation
"""
from .history import EpisodeRecord, EpisodeRecordStore
from .pipeline import PipelineOrchestrator, PipelineRun, PipelineState, build_pipeline
from .validators import ValidationError, validate_roster, validate_topics

__all__ = [
    "PipelineOrchestrator",
    "PipelineRun",
    "PipelineState",
    "build_pipeline",
    "EpisodeRecord",
    "EpisodeRecordStore",
    "ValidationError",
    "validate_topics",
    "validate_roster",
]
