"""Path resolution and destination directory handling."""

import logging
import os
from pathlib import Path

from vidstage.models.errors import FilesystemError

logger = logging.getLogger(__name__)


class ArtifactPathResolver:
    """Resolves paths to canonical absolute form and prepares destinations."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def resolve(self, base_path: Path | str | None, relative_path: Path | str) -> Path:
        """Return ``relative_path`` as an absolute, normalized path.

        Absolute inputs are only normalized; relative ones are anchored at
        ``base_path`` (or the resolver's own base directory).
        """
        candidate = Path(relative_path).expanduser()
        if not candidate.is_absolute():
            anchor = Path(base_path).expanduser() if base_path else self.base_dir
            candidate = anchor / candidate
        return Path(os.path.abspath(candidate))

    def ensure_parent_directory(self, path: Path) -> Path:
        """Create every missing directory above ``path``."""
        parent = Path(path).parent
        try:
            if not parent.is_dir():
                logger.info("Creating directory: %s", parent)
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Cannot create directory {parent}: {e.strerror or e}",
                details={"path": str(parent), "errno": e.errno},
            ) from e
        return parent

    def output_path_for_directory(
        self, source_path: Path, output_dir: Path, extension: str = ".mp4"
    ) -> Path:
        """Destination inside ``output_dir`` named after the source file."""
        directory = self.resolve(None, output_dir)
        return directory / f"{Path(source_path).stem}{extension}"
