"""Tests for stage specs, the transcode runner and progress parsing."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vidstage.models.errors import TranscodeError
from vidstage.models.overlay import (
    AlignmentStrategy,
    AudioTrackSelection,
    DurationAlignmentPlan,
    MappingMode,
)
from vidstage.models.request import ColorAdjustment
from vidstage.models.stage import StageSpec
from vidstage.rendering.ffmpeg_builder import StageSpecBuilder
from vidstage.rendering.progress import FFmpegProgressMonitor
from vidstage.rendering.runner import TranscodeStageRunner

SUBPROCESS = "vidstage.rendering.runner.asyncio.create_subprocess_exec"


def _mock_process(returncode: int | None = 0, stderr_chunks: list[bytes] | None = None):
    proc = MagicMock()
    proc.stderr.read = AsyncMock(side_effect=[*(stderr_chunks or []), b""])
    proc.wait = AsyncMock(return_value=returncode)
    proc.returncode = returncode
    return proc


def _hanging_process():
    async def never(_size):
        await asyncio.sleep(3600)

    proc = MagicMock()
    proc.stderr.read = never
    proc.wait = AsyncMock(return_value=-15)
    proc.returncode = None
    return proc


class TestStageSpecBuilder:
    @pytest.fixture
    def builder(self, settings):
        return StageSpecBuilder(settings)

    def test_normalize_uses_baseline_codecs(self, builder):
        spec = builder.normalize()
        assert spec.video_codec == "libx264"
        assert spec.audio_codec == "copy"
        assert spec.video_filters == [] and spec.audio_filters == []

    def test_pitch_resamples_base_rate(self, builder):
        spec = builder.pitch(1.2)
        assert spec.audio_filters == ["asetrate=52920"]
        assert spec.video_codec == "copy"

    def test_rotate_converts_degrees_to_radians(self, builder):
        spec = builder.rotate(180)
        assert spec.video_filters == ["rotate=3.141593"]

    def test_color_eq_filter(self, builder):
        spec = builder.color(ColorAdjustment(brightness=0.3, contrast=0.8, saturation=1.0))
        assert spec.video_filters == ["eq=brightness=0.3:contrast=0.8:saturation=1"]

    def test_audio_codec_by_extension(self, builder):
        assert builder.audio_codec_for(Path("a.MP3")) == "libmp3lame"
        assert builder.audio_codec_for(Path("a.aac")) == "aac"
        assert builder.audio_codec_for(Path("a.m4a")) == "aac"
        assert builder.audio_codec_for(Path("a.wav")) == "aac"

    def test_overlay_rejects_keep_all(self, builder):
        plan = DurationAlignmentPlan(
            strategy=AlignmentStrategy.TRIM_AUDIO,
            target_duration_seconds=5.0,
            audio_duration_seconds=6.0,
        )
        selection = AudioTrackSelection(mapping_mode=MappingMode.KEEP_ALL)
        with pytest.raises(ValueError):
            builder.overlay(plan, selection, Path("a.mp3"))


class TestBuildCommand:
    @pytest.fixture
    def runner(self, settings):
        return TranscodeStageRunner(settings)

    def test_single_input(self, runner):
        spec = StageSpec(name="rotating", video_filters=["rotate=0.5"], video_codec="libx264",
                         audio_codec="copy")
        cmd = runner.build_command([Path("/w/in.mp4")], Path("/w/out.mp4"), spec)
        assert cmd == [
            "ffmpeg", "-y", "-hide_banner",
            "-i", "/w/in.mp4",
            "-vf", "rotate=0.5",
            "-c:v", "libx264",
            "-c:a", "copy",
            "/w/out.mp4",
        ]

    def test_overlay_loop_options_precede_audio_input(self, runner, settings):
        plan = DurationAlignmentPlan(
            strategy=AlignmentStrategy.LOOP_AUDIO,
            target_duration_seconds=8.0,
            audio_duration_seconds=3.0,
        )
        selection = AudioTrackSelection(mapping_mode=MappingMode.REPLACE, video_has_audio=False)
        spec = StageSpecBuilder(settings).overlay(plan, selection, Path("/a/track.mp3"))

        cmd = runner.build_command([Path("/w/v.mp4"), Path("/a/track.mp3")], Path("/w/o.mp4"), spec)

        assert cmd[3:11] == ["-i", "/w/v.mp4", "-stream_loop", "-1", "-i", "/a/track.mp3",
                             "-map", "0:v:0"]
        assert cmd[cmd.index("-t") + 1] == "8.000"
        assert cmd[cmd.index("-c:a") + 1] == "libmp3lame"
        assert cmd[-1] == "/w/o.mp4"

    def test_requires_input(self, runner):
        with pytest.raises(ValueError):
            runner.build_command([], Path("/w/o.mp4"), StageSpec(name="normalizing"))


class TestTranscodeStageRunner:
    @pytest.fixture
    def runner(self, settings):
        return TranscodeStageRunner(settings)

    async def test_success_reports_progress(self, runner, tmp_path):
        output = tmp_path / "nested" / "out.mp4"
        proc = _mock_process(stderr_chunks=[b"frame=10 time=00:00:0", b"5.00 bitrate=1k\r"])
        seen = []

        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)) as spawn:
            result = await runner.run(
                [tmp_path / "in.mp4"], output, StageSpec(name="normalizing"),
                progress_callback=seen.append, expected_duration=10.0,
            )

        assert result == output
        assert output.parent.is_dir()
        assert spawn.call_args.args[0] == "ffmpeg"
        assert seen == [pytest.approx(0.5)]

    async def test_non_zero_exit_raises_with_excerpt(self, runner, tmp_path):
        proc = _mock_process(returncode=1, stderr_chunks=[b"Invalid argument\nConversion failed!\n"])

        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)):
            with pytest.raises(TranscodeError) as exc_info:
                await runner.run([tmp_path / "in.mp4"], tmp_path / "o.mp4",
                                 StageSpec(name="rotating"))

        err = exc_info.value
        assert err.exit_code == 1
        assert err.stage == "rotating"
        assert "Conversion failed!" in err.stderr_excerpt
        assert not err.timed_out

    async def test_multibyte_char_split_across_reads(self, runner, tmp_path):
        encoded = "Fichier introuvable: vidéo.mp4\n".encode()
        cut = encoded.index(b"\xc3") + 1
        proc = _mock_process(returncode=1, stderr_chunks=[encoded[:cut], encoded[cut:]])

        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)):
            with pytest.raises(TranscodeError) as exc_info:
                await runner.run([tmp_path / "in.mp4"], tmp_path / "o.mp4",
                                 StageSpec(name="normalizing"))

        assert "vidéo.mp4" in exc_info.value.stderr_excerpt
        assert "\ufffd" not in exc_info.value.stderr_excerpt

    async def test_partial_output_is_left_in_place(self, runner, tmp_path):
        output = tmp_path / "o.mp4"
        output.write_bytes(b"partial")
        proc = _mock_process(returncode=1)

        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)):
            with pytest.raises(TranscodeError):
                await runner.run([tmp_path / "in.mp4"], output, StageSpec(name="pitching"))

        assert output.exists()

    async def test_timeout_terminates_process(self, runner, tmp_path):
        proc = _hanging_process()

        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)):
            with pytest.raises(TranscodeError) as exc_info:
                await runner.run([tmp_path / "in.mp4"], tmp_path / "o.mp4",
                                 StageSpec(name="color_adjusting"), timeout=0.05)

        assert exc_info.value.timed_out
        assert exc_info.value.stage == "color_adjusting"
        proc.terminate.assert_called_once()

    async def test_cancellation_terminates_process(self, runner, tmp_path):
        proc = _hanging_process()

        with patch(SUBPROCESS, new=AsyncMock(return_value=proc)):
            task = asyncio.create_task(
                runner.run([tmp_path / "in.mp4"], tmp_path / "o.mp4", StageSpec(name="rotating"))
            )
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        proc.terminate.assert_called_once()

    async def test_missing_binary(self, runner, tmp_path):
        with patch(SUBPROCESS, new=AsyncMock(side_effect=FileNotFoundError)):
            with pytest.raises(TranscodeError, match="not found"):
                await runner.run([tmp_path / "in.mp4"], tmp_path / "o.mp4",
                                 StageSpec(name="normalizing"))


class TestFFmpegProgressMonitor:
    def test_parse_time(self):
        callback_values = []
        monitor = FFmpegProgressMonitor(10.0, callback=callback_values.append)
        ffmpeg_line = (
            "frame= 120 fps= 30 q=28.0 size=    256kB time=00:00:05.00 bitrate= 419.4kbits/s"
        )
        progress = monitor.parse_line(ffmpeg_line)
        assert progress is not None
        assert abs(progress - 0.5) < 0.01
        assert len(callback_values) == 1

    def test_parse_no_time(self):
        monitor = FFmpegProgressMonitor(10.0)
        assert monitor.parse_line("Some other ffmpeg output") is None

    def test_progress_capped(self):
        monitor = FFmpegProgressMonitor(10.0)
        monitor.parse_line("time=00:00:12.50")
        assert monitor.progress == 1.0

    def test_unknown_duration(self):
        monitor = FFmpegProgressMonitor(None)
        assert monitor.parse_line("time=00:00:01.00") == 0.0
