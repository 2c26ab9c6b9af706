"""Transcode stage runner: one ffmpeg invocation per pipeline stage."""

import asyncio
import codecs
import logging
import re
from collections import deque
from collections.abc import Callable, Sequence
from pathlib import Path

from vidstage.config import Settings, get_settings
from vidstage.models.errors import TranscodeError
from vidstage.models.stage import StageSpec
from vidstage.rendering.progress import FFmpegProgressMonitor
from vidstage.storage.paths import ArtifactPathResolver

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"[\r\n]+")


class TranscodeStageRunner:
    """Runs one StageSpec through ffmpeg.

    The runner has no memory between calls and never deletes the output it
    was asked to write, even when the engine fails halfway.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        resolver: ArtifactPathResolver | None = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or ArtifactPathResolver()

    def build_command(
        self, input_paths: Sequence[Path], output_path: Path, spec: StageSpec
    ) -> list[str]:
        """Build the complete FFmpeg command."""
        if not input_paths:
            raise ValueError(f"Stage '{spec.name}' needs at least one input")

        cmd = [self.settings.ffmpeg_binary, "-y", "-hide_banner"]
        for i, input_path in enumerate(input_paths):
            if i < len(spec.input_options):
                cmd.extend(spec.input_options[i])
            cmd.extend(["-i", str(input_path)])

        for stream in spec.maps:
            cmd.extend(["-map", stream])
        if spec.video_filters:
            cmd.extend(["-vf", ",".join(spec.video_filters)])
        if spec.audio_filters:
            cmd.extend(["-af", ",".join(spec.audio_filters)])
        if spec.video_codec:
            cmd.extend(["-c:v", spec.video_codec])
        if spec.audio_codec:
            cmd.extend(["-c:a", spec.audio_codec])
        if spec.duration_limit is not None:
            cmd.extend(["-t", f"{spec.duration_limit:.3f}"])
        cmd.extend(spec.output_options)
        cmd.append(str(output_path))
        return cmd

    async def run(
        self,
        input_paths: Sequence[Path],
        output_path: Path,
        spec: StageSpec,
        timeout: float | None = None,
        progress_callback: Callable[[float], None] | None = None,
        expected_duration: float | None = None,
    ) -> Path:
        """Run the stage and return ``output_path`` once ffmpeg exits cleanly."""
        cmd = self.build_command(input_paths, output_path, spec)
        self.resolver.ensure_parent_directory(output_path)
        limit = timeout if timeout is not None else self.settings.stage_timeout_seconds

        logger.info("Running stage %s -> %s", spec.name, output_path)
        logger.debug("Command: %s", " ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise TranscodeError(
                "FFmpeg not found. Please install FFmpeg.",
                stage=spec.name,
                details={"command": self.settings.ffmpeg_binary},
            )

        monitor = FFmpegProgressMonitor(spec.duration_limit or expected_duration, progress_callback)
        stderr_tail: deque[str] = deque(maxlen=self.settings.stderr_excerpt_lines)

        try:
            await asyncio.wait_for(self._drain(process, monitor, stderr_tail), timeout=limit)
        except TimeoutError:
            await self._terminate(process)
            raise TranscodeError(
                f"Stage '{spec.name}' timed out after {limit}s",
                exit_code=process.returncode,
                stderr_excerpt="\n".join(stderr_tail),
                timed_out=True,
                stage=spec.name,
            )
        except asyncio.CancelledError:
            logger.warning("Stage %s cancelled, terminating ffmpeg", spec.name)
            await self._terminate(process)
            raise

        if process.returncode != 0:
            excerpt = "\n".join(stderr_tail)
            logger.error("FFmpeg failed in stage %s (code %d)", spec.name, process.returncode)
            raise TranscodeError(
                f"FFmpeg exited with code {process.returncode}",
                exit_code=process.returncode,
                stderr_excerpt=excerpt,
                stage=spec.name,
                details={"command": cmd},
            )

        logger.info("Stage %s completed", spec.name)
        return output_path

    async def _drain(
        self,
        process: asyncio.subprocess.Process,
        monitor: FFmpegProgressMonitor,
        stderr_tail: deque[str],
    ) -> None:
        """Consume stderr until EOF, then wait for the exit status."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        while True:
            chunk = await process.stderr.read(4096)
            if not chunk:
                break
            pending += decoder.decode(chunk)
            *lines, pending = _LINE_BREAK.split(pending)
            for line in lines:
                stderr_tail.append(line)
                monitor.parse_line(line)
        pending += decoder.decode(b"", final=True)
        if pending:
            stderr_tail.append(pending)
            monitor.parse_line(pending)
        await process.wait()

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Stop ffmpeg: SIGTERM first, SIGKILL after the grace period."""
        if process.returncode is not None:
            return
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.settings.termination_grace_seconds)
        except ProcessLookupError:
            return
        except TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()
