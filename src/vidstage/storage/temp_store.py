"""Temporary artifact lifecycle management."""

import logging
import uuid
from pathlib import Path

from vidstage.config import get_settings
from vidstage.models.artifact import StageArtifact

logger = logging.getLogger(__name__)


class TempArtifactManager:
    """Tracks the intermediate files of one pipeline run and removes them.

    File names embed the job id, so runs sharing a working directory never
    collide. ``release_all`` only deletes on its first call.
    """

    def __init__(self, job_id: str | None = None, work_dir: Path | None = None):
        self.job_id = job_id or uuid.uuid4().hex
        self.work_dir = Path(work_dir or get_settings().work_dir)
        self._artifacts: list[StageArtifact] = []
        self._sequence = 0
        self._released = False

    @property
    def artifacts(self) -> list[StageArtifact]:
        return list(self._artifacts)

    @property
    def released(self) -> bool:
        return self._released

    def allocate(self, stage: str, suffix: str = ".mp4") -> Path:
        """Return a fresh, job-unique path for a stage's output."""
        self._sequence += 1
        name = f".vidstage-{self.job_id}-{self._sequence:02d}-{stage}{suffix}"
        return self.work_dir / name

    def track(self, artifact: StageArtifact) -> Path:
        """Register an artifact for cleanup; returns its path as the handle."""
        if not artifact.is_temporary:
            raise ValueError(f"Refusing to track non-temporary artifact {artifact.path}")
        if self._released:
            logger.warning("Tracking %s after release for job %s", artifact.path, self.job_id)
        self._artifacts.append(artifact)
        return artifact.path

    def release_all(self) -> int:
        """Delete every tracked artifact still on disk. Returns the count removed."""
        if self._released:
            return 0
        self._released = True

        removed = 0
        for artifact in self._artifacts:
            try:
                artifact.path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error("Error deleting temporary file %s: %s", artifact.path, e)
                continue
            removed += 1
            logger.debug("Deleted temporary file: %s", artifact.path)

        logger.info(f"Cleaned up {removed} temp files for job {self.job_id}")
        return removed
