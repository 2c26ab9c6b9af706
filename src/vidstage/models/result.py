"""Pipeline result data models."""

from pathlib import Path

from pydantic import BaseModel, Field

from vidstage.models.overlay import AudioTrackSelection, DurationAlignmentPlan
from vidstage.models.pipeline import PipelineStage


class PipelineResult(BaseModel):
    """Outcome of a successful pipeline run."""

    job_id: str = Field(..., min_length=1)
    output_path: str = Field(..., description="Path to the finished file")
    stages: list[PipelineStage] = Field(default_factory=list, description="Stages run, in order")
    duration: float | None = Field(default=None, ge=0, description="Output duration in seconds")
    has_audio: bool | None = None
    track_selection: AudioTrackSelection | None = None
    alignment: DurationAlignmentPlan | None = None

    @property
    def output_file(self) -> Path:
        return Path(self.output_path)
