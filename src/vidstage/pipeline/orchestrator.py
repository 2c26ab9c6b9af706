"""Pipeline orchestrator: sequences the editing stages of one job."""

import asyncio
import errno
import logging
import os
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from vidstage.config import Settings, get_settings
from vidstage.models.artifact import StageArtifact
from vidstage.models.errors import (
    ConfigurationError,
    FilesystemError,
    ProcessingError,
    VidstageError,
)
from vidstage.models.overlay import AudioTrackSelection, DurationAlignmentPlan
from vidstage.models.pipeline import PipelineStage, PipelineState
from vidstage.models.request import PipelineOptions, PipelineRequest
from vidstage.models.result import PipelineResult
from vidstage.models.stage import StageSpec
from vidstage.planning.overlay_planner import AudioOverlayPlanner
from vidstage.probing.media_probe import MediaProbe
from vidstage.rendering.ffmpeg_builder import StageSpecBuilder
from vidstage.rendering.runner import TranscodeStageRunner
from vidstage.storage.paths import ArtifactPathResolver
from vidstage.storage.temp_store import TempArtifactManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionalStage:
    """A stage that runs only when its predicate accepts the request options."""

    stage: PipelineStage
    predicate: Callable[[PipelineOptions], bool]
    build_spec: Callable[[StageSpecBuilder, PipelineOptions], StageSpec]


OPTIONAL_STAGES: tuple[OptionalStage, ...] = (
    OptionalStage(
        PipelineStage.PITCHING,
        lambda options: options.pitch_factor is not None,
        lambda builder, options: builder.pitch(options.pitch_factor),
    ),
    OptionalStage(
        PipelineStage.ROTATING,
        lambda options: options.rotation_degrees is not None,
        lambda builder, options: builder.rotate(options.rotation_degrees),
    ),
    OptionalStage(
        PipelineStage.COLOR_ADJUSTING,
        lambda options: options.color_adjustment is not None,
        lambda builder, options: builder.color(options.color_adjustment),
    ),
)


class PipelineOrchestrator:
    """Runs a PipelineRequest from INIT to DONE (or ERRORED/CANCELLED).

    Stages run strictly one after another. Every intermediate file is
    tracked by a per-run TempArtifactManager and removed before ``run``
    returns or raises.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        probe: MediaProbe | None = None,
        runner: TranscodeStageRunner | None = None,
        builder: StageSpecBuilder | None = None,
        planner: AudioOverlayPlanner | None = None,
        resolver: ArtifactPathResolver | None = None,
        stages: Sequence[OptionalStage] = OPTIONAL_STAGES,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or ArtifactPathResolver()
        self.probe = probe or MediaProbe(timeout=self.settings.probe_timeout_seconds)
        self.runner = runner or TranscodeStageRunner(self.settings, self.resolver)
        self.builder = builder or StageSpecBuilder(self.settings)
        self.planner = planner or AudioOverlayPlanner(self.probe, self.builder)
        self.stages = tuple(stages)

    def planned_stages(self, request: PipelineRequest) -> list[PipelineStage]:
        """Transform stages the request selects, overlay excluded."""
        selected = [PipelineStage.NORMALIZING]
        selected.extend(s.stage for s in self.stages if s.predicate(request.options))
        return selected

    async def run(
        self,
        request: PipelineRequest,
        job_id: str | None = None,
        state: PipelineState | None = None,
        stage_timeout: float | None = None,
        probe_timeout: float | None = None,
        on_update: Callable[[PipelineState], None] | None = None,
    ) -> PipelineResult:
        """Process one request end to end."""
        temp = TempArtifactManager(job_id=job_id, work_dir=self.settings.work_dir)
        if state is None:
            now = datetime.now(UTC)
            state = PipelineState(job_id=temp.job_id, started_at=now, updated_at=now)
        state.source_video_path = str(request.source_video_path)
        run = _Run(self, request, temp, state, stage_timeout, probe_timeout, on_update)

        try:
            return await run.execute()
        except asyncio.CancelledError:
            run.update(PipelineStage.CANCELLED, message="Job cancelled")
            raise
        except VidstageError as e:
            if e.stage is None:
                e.stage = state.stage.value
            run.fail(e)
            raise
        except Exception as e:
            failed_stage = state.stage.value
            error = ProcessingError(f"Pipeline failed: {e}", stage=failed_stage)
            run.fail(error)
            raise error from e
        finally:
            temp.release_all()

    async def run_to_directory(
        self,
        source_video_path: Path,
        replacement_audio_path: Path | None,
        output_dir: Path,
        options: PipelineOptions | None = None,
        **kwargs,
    ) -> PipelineResult:
        """Process into ``output_dir``, naming the output after the source."""
        final_path = self.resolver.output_path_for_directory(
            source_video_path, output_dir, self.settings.output_extension
        )
        request = PipelineRequest(
            source_video_path=source_video_path,
            replacement_audio_path=replacement_audio_path,
            final_output_path=final_path,
            options=options or PipelineOptions(),
        )
        return await self.run(request, **kwargs)


class _Run:
    """Mutable bookkeeping for a single orchestrator run."""

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        request: PipelineRequest,
        temp: TempArtifactManager,
        state: PipelineState,
        stage_timeout: float | None,
        probe_timeout: float | None,
        on_update: Callable[[PipelineState], None] | None,
    ):
        self.pipeline = orchestrator
        self.request = request
        self.temp = temp
        self.state = state
        self.stage_timeout = stage_timeout
        self.probe_timeout = probe_timeout
        self.on_update = on_update
        self._steps_total = 1
        self._steps_done = 0

    def update(self, stage: PipelineStage, progress: float | None = None, message: str = ""):
        self.state.advance(stage, progress, message)
        if self.on_update:
            self.on_update(self.state)

    def fail(self, error: VidstageError) -> None:
        self.state.failed_stage = self.state.stage
        self.state.error = str(error)
        logger.error("Job %s failed in stage %s: %s", self.state.job_id, error.stage, error.message)
        self.update(PipelineStage.ERRORED, message=str(error))

    async def execute(self) -> PipelineResult:
        request = self.request
        options = request.options
        resolver = self.pipeline.resolver

        source = resolver.resolve(None, request.source_video_path)
        final_path = resolver.resolve(None, request.final_output_path)
        audio_path = (
            resolver.resolve(None, request.replacement_audio_path)
            if request.replacement_audio_path
            else None
        )
        self._validate(options, source, final_path, audio_path)
        resolver.ensure_parent_directory(final_path)

        transform_stages = self.pipeline.planned_stages(request)
        self._steps_total = len(transform_stages) + (1 if audio_path else 0) + 1

        video_has_audio = await self.pipeline.probe.has_audio_stream(source, timeout=self.probe_timeout)

        working = source
        for stage, spec in self._transform_specs(options):
            working = await self._run_stage(stage, [working], spec)

        selection: AudioTrackSelection | None = None
        alignment: DurationAlignmentPlan | None = None
        if audio_path is not None:
            selection = self.pipeline.planner.select_tracks(options.override_audio, video_has_audio)
            if selection.replaces_audio:
                self.update(PipelineStage.AUDIO_OVERLAYING, self._progress(),
                            "Overlaying replacement audio...")
                alignment = await self.pipeline.planner.plan_for(
                    working, audio_path, timeout=self.probe_timeout
                )
                spec = self.pipeline.planner.build_overlay_spec(alignment, selection, audio_path)
                working = await self._run_stage(
                    PipelineStage.AUDIO_OVERLAYING, [working, audio_path], spec,
                    expected_duration=alignment.target_duration_seconds,
                )
            else:
                logger.info("Keeping existing audio; replacement track is not muxed")

        self.update(PipelineStage.FINALIZING, self._progress(), "Finalizing output...")
        duration = await self.pipeline.probe.get_duration_seconds(working, timeout=self.probe_timeout)
        self._finalize(working, source, final_path)

        self.state.output_path = str(final_path)
        self.update(PipelineStage.DONE, 1.0, "Processing complete!")
        return PipelineResult(
            job_id=self.state.job_id,
            output_path=str(final_path),
            stages=list(self.state.completed_stages),
            duration=duration,
            has_audio=video_has_audio or bool(selection and selection.replaces_audio),
            track_selection=selection,
            alignment=alignment,
        )

    def _validate(
        self,
        options: PipelineOptions,
        source: Path,
        final_path: Path,
        audio_path: Path | None,
    ) -> None:
        options.ensure_valid()
        if not source.is_file() or not os.access(source, os.R_OK):
            raise ConfigurationError(
                f"Source video not found or unreadable: {source}",
                details={"source_video_path": str(source)},
            )
        if audio_path is not None and not audio_path.is_file():
            raise ConfigurationError(
                f"Replacement audio not found: {audio_path}",
                details={"replacement_audio_path": str(audio_path)},
            )
        if final_path == source:
            raise ConfigurationError(
                "final_output_path must differ from the source video",
                details={"final_output_path": str(final_path)},
            )
        if audio_path is not None and final_path == audio_path:
            raise ConfigurationError(
                "final_output_path must differ from the replacement audio",
                details={"final_output_path": str(final_path)},
            )

    def _transform_specs(self, options: PipelineOptions):
        """Yield (stage, spec) for normalization and every selected optional stage."""
        yield PipelineStage.NORMALIZING, self.pipeline.builder.normalize(PipelineStage.NORMALIZING.value)
        for optional in self.pipeline.stages:
            if optional.predicate(options):
                yield optional.stage, optional.build_spec(self.pipeline.builder, options)
            else:
                logger.debug("Skipping stage %s", optional.stage.value)

    async def _run_stage(
        self,
        stage: PipelineStage,
        inputs: list[Path],
        spec: StageSpec,
        expected_duration: float | None = None,
    ) -> Path:
        if self.state.stage != stage:
            self.update(stage, self._progress(), f"Running {stage.value}...")
        output = self.temp.allocate(stage.value, self.pipeline.settings.output_extension)
        # Tracked before the engine starts so partial output is cleaned up too
        self.temp.track(StageArtifact(path=output, produced_by=stage.value))

        base = self._progress()
        span = 1.0 / self._steps_total

        def on_progress(fraction: float) -> None:
            self.state.progress = min(1.0, base + fraction * span)

        await self.pipeline.runner.run(
            inputs,
            output,
            spec,
            timeout=self.stage_timeout,
            progress_callback=on_progress,
            expected_duration=expected_duration,
        )
        self._steps_done += 1
        return output

    def _progress(self) -> float:
        return min(1.0, self._steps_done / self._steps_total)

    def _finalize(self, working: Path, source: Path, final_path: Path) -> None:
        """Put the working artifact at ``final_path`` without touching the source."""
        try:
            if working != source:
                try:
                    os.replace(working, final_path)
                    return
                except OSError as e:
                    if e.errno != errno.EXDEV:
                        raise
            staging = final_path.with_name(f".{final_path.name}.{self.temp.job_id}.partial")
            self.temp.track(StageArtifact(path=staging, produced_by=PipelineStage.FINALIZING.value))
            shutil.copy2(working, staging)
            os.replace(staging, final_path)
        except OSError as e:
            raise FilesystemError(
                f"Cannot write final output {final_path}: {e.strerror or e}",
                details={"final_output_path": str(final_path), "errno": e.errno},
                stage=PipelineStage.FINALIZING.value,
            ) from e
