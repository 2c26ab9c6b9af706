"""Status endpoint."""

from fastapi import APIRouter, Depends

from vidstage.api.dependencies import get_pipeline_manager
from vidstage.models.errors import ConfigurationError
from vidstage.pipeline.manager import PipelineManager

router = APIRouter(prefix="/api/v1", tags=["status"])


@router.get("/status/{job_id}")
async def get_status(
    job_id: str,
    manager: PipelineManager = Depends(get_pipeline_manager),
):
    """Get the processing status of a job."""
    state = manager.get_job_state(job_id)
    if not state:
        raise ConfigurationError(f"Job {job_id} not found")

    return {
        "job_id": state.job_id,
        "stage": state.stage.value,
        "progress": state.progress,
        "message": state.message,
        "started_at": state.started_at.isoformat() if state.started_at else None,
        "updated_at": state.updated_at.isoformat() if state.updated_at else None,
        "completed_at": state.completed_at.isoformat() if state.completed_at else None,
        "completed_stages": [stage.value for stage in state.completed_stages],
        "failed_stage": state.failed_stage.value if state.failed_stage else None,
        "error": state.error,
        "output_path": state.output_path,
    }
