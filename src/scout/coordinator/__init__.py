"""Pipeline coordinator and its event types."""

from scout.coordinator.events import (
    CompanyEvent,
    CompleteEvent,
    ErrorEvent,
    PipelineEvent,
    ProgressEvent,
    is_terminal,
)
from scout.coordinator.pipeline import ResearchPipeline, build_pipeline

__all__ = [
    "CompanyEvent",
    "CompleteEvent",
    "ErrorEvent",
    "PipelineEvent",
    "ProgressEvent",
    "ResearchPipeline",
    "build_pipeline",
    "is_terminal",
]
