"""Stream and container metadata queries using ffprobe."""

import asyncio
import json
import logging
from pathlib import Path

from vidstage.config import get_settings
from vidstage.models.errors import ProbeError

logger = logging.getLogger(__name__)


class MediaProbe:
    """Read-only metadata queries against the probing engine."""

    def __init__(self, ffprobe_binary: str | None = None, timeout: float | None = None):
        settings = get_settings()
        self.ffprobe_binary = ffprobe_binary or settings.ffprobe_binary
        self.timeout = timeout if timeout is not None else settings.probe_timeout_seconds

    def build_command(self, path: Path) -> list[str]:
        return [
            self.ffprobe_binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]

    async def probe(self, path: Path, timeout: float | None = None) -> dict:
        """Return ffprobe's format and stream metadata for ``path``."""
        path = Path(path)
        if not path.exists():
            raise ProbeError(f"File not found: {path}", details={"file": str(path)})

        limit = timeout if timeout is not None else self.timeout
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command(path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise ProbeError(
                "ffprobe not found. Please install FFmpeg.",
                details={"command": self.ffprobe_binary},
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except TimeoutError:
            await _kill(process)
            raise ProbeError(
                f"Probe timed out after {limit}s: file may be corrupted",
                details={"file": str(path), "timeout": limit},
            )
        except asyncio.CancelledError:
            await _kill(process)
            raise

        if process.returncode != 0:
            raise ProbeError(
                "File appears to be corrupted or unreadable",
                details={
                    "file": str(path),
                    "exit_code": process.returncode,
                    "stderr": stderr.decode(errors="replace")[:500],
                },
            )

        try:
            return json.loads(stdout)
        except json.JSONDecodeError:
            raise ProbeError(
                "Failed to parse ffprobe output",
                details={"file": str(path)},
            )

    async def has_audio_stream(self, path: Path, timeout: float | None = None) -> bool:
        """True iff at least one stream of ``path`` is an audio stream."""
        logger.info("Checking for audio in %s", path)
        probe_data = await self.probe(path, timeout=timeout)
        return any(s.get("codec_type") == "audio" for s in probe_data.get("streams", []))

    async def get_duration_seconds(self, path: Path, timeout: float | None = None) -> float:
        """Container-reported duration of ``path`` in seconds."""
        logger.info("Getting duration of %s", path)
        probe_data = await self.probe(path, timeout=timeout)
        raw = probe_data.get("format", {}).get("duration")
        try:
            return float(raw)
        except (TypeError, ValueError):
            raise ProbeError(
                "Container reports no usable duration",
                details={"file": str(path), "duration": raw},
            )


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
