"""Shared test fixtures and fake engine collaborators."""

import asyncio
from pathlib import Path

import pytest

from vidstage.config import Settings
from vidstage.models.errors import TranscodeError
from vidstage.models.stage import StageSpec
from vidstage.pipeline.orchestrator import PipelineOrchestrator


class FakeProbe:
    """MediaProbe stand-in answering from fixed durations.

    Any path not listed in ``durations`` reports the video duration, which
    covers every intermediate artifact derived from the source.
    """

    def __init__(
        self,
        video_duration: float = 10.0,
        video_has_audio: bool = True,
        durations: dict[Path, float] | None = None,
    ):
        self.video_duration = video_duration
        self.video_has_audio = video_has_audio
        self.durations = {Path(p): d for p, d in (durations or {}).items()}
        self.calls: list[tuple[str, Path]] = []

    async def has_audio_stream(self, path: Path, timeout: float | None = None) -> bool:
        self.calls.append(("has_audio_stream", Path(path)))
        return self.video_has_audio

    async def get_duration_seconds(self, path: Path, timeout: float | None = None) -> float:
        self.calls.append(("get_duration_seconds", Path(path)))
        return self.durations.get(Path(path), self.video_duration)


class FakeRunner:
    """TranscodeStageRunner stand-in that writes a marker file per stage.

    ``fail_stage`` makes that stage write partial output and then fail the
    way ffmpeg does; ``hang_stage`` blocks that stage until cancelled.
    """

    def __init__(self, fail_stage: str | None = None, hang_stage: str | None = None):
        self.fail_stage = fail_stage
        self.hang_stage = hang_stage
        self.calls: list[tuple[str, list[Path], Path, StageSpec]] = []
        self.started = asyncio.Event()
        self.cancelled = False

    @property
    def stage_names(self) -> list[str]:
        return [name for name, _, _, _ in self.calls]

    async def run(self, input_paths, output_path, spec, timeout=None, progress_callback=None,
                  expected_duration=None):
        inputs = [Path(p) for p in input_paths]
        self.calls.append((spec.name, inputs, Path(output_path), spec))
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        if spec.name == self.hang_stage:
            Path(output_path).write_bytes(b"partial")
            self.started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise

        if spec.name == self.fail_stage:
            Path(output_path).write_bytes(b"partial")
            raise TranscodeError(
                "FFmpeg exited with code 1",
                exit_code=1,
                stderr_excerpt="Error while filtering",
                stage=spec.name,
            )

        payload = f"{spec.name}<-{','.join(p.name for p in inputs)}"
        Path(output_path).write_text(payload)
        if progress_callback:
            progress_callback(1.0)
        return Path(output_path)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every directory into the test's tmp_path."""
    return Settings(
        work_dir=tmp_path / "work",
        output_dir=tmp_path / "out",
        probe_timeout_seconds=5.0,
        stage_timeout_seconds=5.0,
        termination_grace_seconds=0.5,
    )


@pytest.fixture
def source_video(tmp_path) -> Path:
    path = tmp_path / "in" / "clip.webm"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"source-video-bytes")
    return path


@pytest.fixture
def replacement_audio(tmp_path) -> Path:
    path = tmp_path / "in" / "track.mp3"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"replacement-audio-bytes")
    return path


@pytest.fixture
def final_output(tmp_path) -> Path:
    return tmp_path / "out" / "nested" / "final.mp4"


def make_orchestrator(settings, probe=None, runner=None) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        settings=settings,
        probe=probe or FakeProbe(),
        runner=runner or FakeRunner(),
    )


def list_files(root: Path) -> set[Path]:
    """Every regular file below ``root``, hidden ones included."""
    return {p for p in root.rglob("*") if p.is_file()}
