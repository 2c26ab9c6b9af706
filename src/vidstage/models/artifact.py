"""Stage artifact data models."""

from pathlib import Path

from pydantic import BaseModel, Field


class StageArtifact(BaseModel):
    """A file produced by one pipeline stage."""

    path: Path
    produced_by: str = Field(..., min_length=1, description="Stage that wrote the file")
    is_temporary: bool = Field(default=True)

    def exists(self) -> bool:
        return self.path.exists()
