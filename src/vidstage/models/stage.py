"""Transcode stage specification."""

from pydantic import BaseModel, Field


class StageSpec(BaseModel):
    """Everything the transcoding engine needs for one stage.

    ``input_options`` is positional: entry ``i`` is placed before the ``i``-th
    ``-i`` argument. Missing entries mean no options for that input.
    """

    name: str = Field(..., min_length=1)
    input_options: list[list[str]] = Field(default_factory=list)
    video_filters: list[str] = Field(default_factory=list)
    audio_filters: list[str] = Field(default_factory=list)
    video_codec: str | None = Field(default=None, description="Encoder name or 'copy'")
    audio_codec: str | None = Field(default=None, description="Encoder name or 'copy'")
    maps: list[str] = Field(default_factory=list, description="-map directives")
    duration_limit: float | None = Field(default=None, gt=0, description="-t bound")
    output_options: list[str] = Field(default_factory=list)
