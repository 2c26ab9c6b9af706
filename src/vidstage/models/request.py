"""Pipeline request data models."""

import math
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from vidstage.models.errors import ConfigurationError


class ColorAdjustment(BaseModel):
    """Coefficients for the ``eq`` video filter."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    brightness: float = Field(default=0.0, description="Added to luma, -1.0..1.0")
    contrast: float = Field(default=1.0, description="Contrast multiplier")
    saturation: float = Field(default=1.0, description="Saturation multiplier")


class PipelineOptions(BaseModel):
    """Tunable options selecting which optional stages run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pitch_factor: float | None = Field(default=None, description="Sample rate multiplier")
    rotation_degrees: float | None = Field(default=None, description="Clockwise rotation")
    color_adjustment: ColorAdjustment | None = None
    override_audio: bool = Field(
        default=False, description="Replace the original audio even when it exists"
    )

    def ensure_valid(self) -> None:
        """Raise ConfigurationError for values no stage can honour."""
        if self.pitch_factor is not None:
            if not math.isfinite(self.pitch_factor) or self.pitch_factor <= 0:
                raise ConfigurationError(
                    f"pitch_factor must be a positive number, got {self.pitch_factor}",
                    details={"pitch_factor": self.pitch_factor},
                )
        if self.rotation_degrees is not None and not math.isfinite(self.rotation_degrees):
            raise ConfigurationError(
                "rotation_degrees must be finite",
                details={"rotation_degrees": self.rotation_degrees},
            )
        if self.color_adjustment is not None:
            for name, value in self.color_adjustment.model_dump().items():
                if not math.isfinite(value):
                    raise ConfigurationError(
                        f"color_adjustment.{name} must be finite",
                        details={name: value},
                    )


class PipelineRequest(BaseModel):
    """One processing job: a source video, optional audio and a destination."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_video_path: Path
    replacement_audio_path: Path | None = None
    final_output_path: Path
    options: PipelineOptions = Field(default_factory=PipelineOptions)
