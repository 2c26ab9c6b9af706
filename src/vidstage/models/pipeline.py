"""Pipeline state and stage models."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class PipelineStage(StrEnum):
    """States of one pipeline run."""

    INIT = "init"
    NORMALIZING = "normalizing"
    PITCHING = "pitching"
    ROTATING = "rotating"
    COLOR_ADJUSTING = "color_adjusting"
    AUDIO_OVERLAYING = "audio_overlaying"
    FINALIZING = "finalizing"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES


TERMINAL_STAGES = frozenset({PipelineStage.DONE, PipelineStage.ERRORED, PipelineStage.CANCELLED})


class PipelineState(BaseModel):
    """Current state of one processing job, owned by a single run."""

    job_id: str = Field(..., min_length=1)
    stage: PipelineStage = Field(default=PipelineStage.INIT)
    progress: float = Field(default=0.0, ge=0, le=1)
    message: str = Field(default="")
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    failed_stage: PipelineStage | None = None
    completed_stages: list[PipelineStage] = Field(default_factory=list)
    source_video_path: str | None = None
    output_path: str | None = None

    def advance(self, stage: PipelineStage, progress: float | None = None, message: str = ""):
        """Move to ``stage``.

        The stage being left counts as completed unless the move is into
        ERRORED or CANCELLED.
        """
        leaving_work_stage = self.stage not in (PipelineStage.INIT, *TERMINAL_STAGES)
        if leaving_work_stage and stage not in (PipelineStage.ERRORED, PipelineStage.CANCELLED):
            self.completed_stages.append(self.stage)
        self.stage = stage
        if progress is not None:
            self.progress = min(1.0, max(0.0, progress))
        self.message = message
        self.updated_at = datetime.now(UTC)
        if stage.is_terminal:
            self.completed_at = self.updated_at
