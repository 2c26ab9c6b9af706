"""Audio overlay planning: track selection and duration reconciliation."""

import logging
from pathlib import Path

from vidstage.models.errors import ProbeError
from vidstage.models.overlay import (
    AlignmentStrategy,
    AudioTrackSelection,
    DurationAlignmentPlan,
    MappingMode,
)
from vidstage.models.stage import StageSpec
from vidstage.probing.media_probe import MediaProbe
from vidstage.rendering.ffmpeg_builder import StageSpecBuilder

logger = logging.getLogger(__name__)


class AudioOverlayPlanner:
    """Decides how a replacement audio track is fitted onto a video."""

    def __init__(self, probe: MediaProbe | None = None, builder: StageSpecBuilder | None = None):
        self.probe = probe or MediaProbe()
        self.builder = builder or StageSpecBuilder()

    @staticmethod
    def select_tracks(override_audio: bool, video_has_audio: bool) -> AudioTrackSelection:
        """REPLACE when asked to, or when there is no original audio to keep."""
        mode = MappingMode.REPLACE if override_audio or not video_has_audio else MappingMode.KEEP_ALL
        return AudioTrackSelection(
            mapping_mode=mode,
            override_audio=override_audio,
            video_has_audio=video_has_audio,
        )

    @staticmethod
    def plan(video_duration: float, audio_duration: float) -> DurationAlignmentPlan:
        """Loop audio shorter than the video, otherwise play once and cut.

        Equal lengths trim: looping a track that already fits would repeat
        its first frame at the boundary.
        """
        if video_duration <= 0:
            raise ProbeError(
                f"Video duration must be positive, got {video_duration}",
                details={"video_duration": video_duration},
            )
        if audio_duration < 0:
            raise ProbeError(
                f"Audio duration must not be negative, got {audio_duration}",
                details={"audio_duration": audio_duration},
            )

        if audio_duration < video_duration:
            strategy = AlignmentStrategy.LOOP_AUDIO
        else:
            strategy = AlignmentStrategy.TRIM_AUDIO

        return DurationAlignmentPlan(
            strategy=strategy,
            target_duration_seconds=video_duration,
            audio_duration_seconds=audio_duration,
        )

    async def plan_for(
        self,
        video_path: Path,
        audio_path: Path,
        video_duration: float | None = None,
        timeout: float | None = None,
    ) -> DurationAlignmentPlan:
        """Measure whatever duration is not already known, then plan."""
        if video_duration is None:
            video_duration = await self.probe.get_duration_seconds(video_path, timeout=timeout)
        audio_duration = await self.probe.get_duration_seconds(audio_path, timeout=timeout)
        plan = self.plan(video_duration, audio_duration)
        if plan.loops_audio:
            logger.info("Looping shorter audio (%.2fs) to match video (%.2fs)",
                        audio_duration, video_duration)
        else:
            logger.info("Cutting audio (%.2fs) to match video (%.2fs)",
                        audio_duration, video_duration)
        return plan

    def build_overlay_spec(
        self,
        plan: DurationAlignmentPlan,
        selection: AudioTrackSelection,
        audio_path: Path,
    ) -> StageSpec:
        return self.builder.overlay(plan, selection, audio_path)
