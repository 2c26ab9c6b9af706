"""Processing endpoints."""

from fastapi import APIRouter, Depends

from vidstage.api.dependencies import get_pipeline_manager
from vidstage.models.errors import ConfigurationError
from vidstage.models.request import PipelineRequest
from vidstage.pipeline.manager import PipelineManager

router = APIRouter(prefix="/api/v1", tags=["process"])


@router.post("/process")
async def start_processing(
    request: PipelineRequest,
    manager: PipelineManager = Depends(get_pipeline_manager),
):
    """Register a job and start running it in the background."""
    request.options.ensure_valid()
    if not request.source_video_path.is_file():
        raise ConfigurationError(f"Source video not found: {request.source_video_path}")

    state = manager.create_job(request)
    manager.start(state.job_id)

    return {
        "job_id": state.job_id,
        "status": "processing",
        "message": "Processing started",
    }


@router.delete("/process/{job_id}")
async def cancel_processing(
    job_id: str,
    manager: PipelineManager = Depends(get_pipeline_manager),
):
    """Cancel a running processing job."""
    cancelled = manager.cancel_job(job_id)
    if not cancelled:
        raise ConfigurationError(f"Job {job_id} not found")
    return {"job_id": job_id, "status": "cancelling"}
