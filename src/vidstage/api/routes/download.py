"""Download endpoint."""

from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from vidstage.api.dependencies import get_pipeline_manager
from vidstage.models.errors import ConfigurationError
from vidstage.models.pipeline import PipelineStage
from vidstage.pipeline.manager import PipelineManager

router = APIRouter(prefix="/api/v1", tags=["download"])


@router.get("/download/{job_id}")
async def download_output(
    job_id: str,
    manager: PipelineManager = Depends(get_pipeline_manager),
):
    """Download the finished output video. Only available once the job is done."""
    state = manager.get_job_state(job_id)
    if not state:
        raise ConfigurationError(f"Job {job_id} not found")

    if state.stage != PipelineStage.DONE:
        raise ConfigurationError(f"Job is not complete (current stage: {state.stage.value})")

    if not state.output_path or not Path(state.output_path).exists():
        raise ConfigurationError("Output file not found")

    return FileResponse(
        path=state.output_path,
        media_type="video/mp4",
        filename=Path(state.output_path).name,
    )
