"""Audio overlay planning data models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class AlignmentStrategy(StrEnum):
    """How a replacement audio track is fitted to the video length."""

    LOOP_AUDIO = "loop_audio"
    TRIM_AUDIO = "trim_audio"


class MappingMode(StrEnum):
    """Which streams end up in the overlay output."""

    REPLACE = "replace"
    KEEP_ALL = "keep_all"


class DurationAlignmentPlan(BaseModel):
    """Result of reconciling video and replacement audio durations."""

    strategy: AlignmentStrategy
    target_duration_seconds: float = Field(..., gt=0, description="Output length bound")
    audio_duration_seconds: float = Field(..., ge=0)

    @property
    def loops_audio(self) -> bool:
        return self.strategy == AlignmentStrategy.LOOP_AUDIO


class AudioTrackSelection(BaseModel):
    """Stream mapping decision for the replacement audio."""

    mapping_mode: MappingMode
    override_audio: bool = False
    video_has_audio: bool = True

    @property
    def replaces_audio(self) -> bool:
        return self.mapping_mode == MappingMode.REPLACE
