"""Data models for vidstage."""

from vidstage.models.artifact import StageArtifact
from vidstage.models.errors import (
    ConfigurationError,
    ErrorResponse,
    FilesystemError,
    ProbeError,
    ProcessingError,
    TranscodeError,
    VidstageError,
)
from vidstage.models.overlay import (
    AlignmentStrategy,
    AudioTrackSelection,
    DurationAlignmentPlan,
    MappingMode,
)
from vidstage.models.pipeline import PipelineStage, PipelineState
from vidstage.models.request import ColorAdjustment, PipelineOptions, PipelineRequest
from vidstage.models.result import PipelineResult
from vidstage.models.stage import StageSpec

__all__ = [
    "AlignmentStrategy",
    "AudioTrackSelection",
    "ColorAdjustment",
    "ConfigurationError",
    "DurationAlignmentPlan",
    "ErrorResponse",
    "FilesystemError",
    "MappingMode",
    "PipelineOptions",
    "PipelineRequest",
    "PipelineResult",
    "PipelineStage",
    "PipelineState",
    "ProbeError",
    "ProcessingError",
    "StageArtifact",
    "StageSpec",
    "TranscodeError",
    "VidstageError",
]
