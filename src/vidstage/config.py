"""Application configuration using Pydantic BaseSettings."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """vidstage configuration loaded from environment variables."""

    model_config = {"env_prefix": "VIDSTAGE_", "env_file": ".env", "extra": "ignore"}

    # External engines
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"

    # Redis / Celery
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    # Directories
    work_dir: Path = Path("/tmp/vidstage/work")
    output_dir: Path = Path("/tmp/vidstage/output")

    # Timeouts (seconds); None disables the limit
    probe_timeout_seconds: float | None = 30.0
    stage_timeout_seconds: float | None = 1800.0
    termination_grace_seconds: float = 5.0

    # Normalization baseline
    normalize_video_codec: str = "libx264"
    normalize_audio_codec: str = "copy"
    output_extension: str = ".mp4"

    # Filter stages
    filter_video_codec: str = "libx264"
    base_sample_rate: int = 44100

    # Overlay
    overlay_fallback_audio_codec: str = "aac"

    # Diagnostics
    stderr_excerpt_lines: int = 30


def get_settings() -> Settings:
    """Return settings instance."""
    return Settings()
