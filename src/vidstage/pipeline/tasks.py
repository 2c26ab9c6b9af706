"""Celery task definitions."""

import asyncio

from celery import Celery

from vidstage.config import get_settings
from vidstage.models.errors import VidstageError
from vidstage.models.request import PipelineRequest

settings = get_settings()

celery_app = Celery(
    "vidstage",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
)


@celery_app.task(bind=True, name="vidstage.process_video")
def process_video_task(self, request: dict, job_id: str | None = None):
    """Celery task wrapping PipelineOrchestrator.run() for one request."""
    from vidstage.pipeline.orchestrator import PipelineOrchestrator

    pipeline_request = PipelineRequest.model_validate(request)
    orchestrator = PipelineOrchestrator()

    try:
        result = asyncio.run(orchestrator.run(pipeline_request, job_id=job_id or self.request.id))
        return {
            "job_id": result.job_id,
            "status": "done",
            "output_path": result.output_path,
            "stages": [stage.value for stage in result.stages],
        }
    except VidstageError as e:
        return {
            "job_id": job_id or self.request.id,
            "status": "errored",
            "error_type": type(e).__name__,
            "stage": e.stage,
            "error": e.message,
        }
