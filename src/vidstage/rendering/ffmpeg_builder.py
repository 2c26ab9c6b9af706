"""Stage specifications for each pipeline transformation."""

import math
from pathlib import Path

from vidstage.config import Settings, get_settings
from vidstage.models.overlay import AudioTrackSelection, DurationAlignmentPlan
from vidstage.models.request import ColorAdjustment
from vidstage.models.stage import StageSpec

# Encoders for replacement audio, keyed by file extension
AUDIO_CODECS_BY_EXTENSION = {
    ".mp3": "libmp3lame",
    ".aac": "aac",
}


class StageSpecBuilder:
    """Builds the StageSpec for every transformation the pipeline knows."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def normalize(self, name: str = "normalizing") -> StageSpec:
        """Re-encode into the working container/codec baseline."""
        return StageSpec(
            name=name,
            video_codec=self.settings.normalize_video_codec,
            audio_codec=self.settings.normalize_audio_codec,
        )

    def pitch(self, pitch_factor: float, name: str = "pitching") -> StageSpec:
        """Shift pitch by resampling the audio at ``pitch_factor`` times the base rate."""
        sample_rate = round(self.settings.base_sample_rate * pitch_factor)
        return StageSpec(
            name=name,
            audio_filters=[f"asetrate={sample_rate}"],
            video_codec="copy",
        )

    def rotate(self, rotation_degrees: float, name: str = "rotating") -> StageSpec:
        radians = rotation_degrees * math.pi / 180
        return StageSpec(
            name=name,
            video_filters=[f"rotate={radians:.6f}"],
            video_codec=self.settings.filter_video_codec,
            audio_codec="copy",
        )

    def color(self, adjustment: ColorAdjustment, name: str = "color_adjusting") -> StageSpec:
        return StageSpec(
            name=name,
            video_filters=[
                f"eq=brightness={adjustment.brightness:g}"
                f":contrast={adjustment.contrast:g}"
                f":saturation={adjustment.saturation:g}"
            ],
            video_codec=self.settings.filter_video_codec,
            audio_codec="copy",
        )

    def overlay(
        self,
        plan: DurationAlignmentPlan,
        selection: AudioTrackSelection,
        audio_path: Path,
        name: str = "audio_overlaying",
    ) -> StageSpec:
        """Mux the replacement audio against the video, bounded to the video length.

        Input 0 is the video, input 1 the replacement audio.
        """
        if not selection.replaces_audio:
            raise ValueError("Overlay spec requested for a selection that keeps original audio")

        audio_input_options = ["-stream_loop", "-1"] if plan.loops_audio else []
        return StageSpec(
            name=name,
            input_options=[[], audio_input_options],
            maps=["0:v:0", "1:a:0"],
            video_codec="copy",
            audio_codec=self.audio_codec_for(audio_path),
            duration_limit=plan.target_duration_seconds,
        )

    def audio_codec_for(self, audio_path: Path) -> str:
        """Pick the audio encoder from the replacement file's extension."""
        extension = Path(audio_path).suffix.lower()
        return AUDIO_CODECS_BY_EXTENSION.get(
            extension, self.settings.overlay_fallback_audio_codec
        )
