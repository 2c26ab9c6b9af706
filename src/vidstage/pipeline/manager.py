"""Pipeline manager: keeps track of jobs submitted through the API."""

import asyncio
import logging
import uuid
from datetime import UTC, datetime

from vidstage.models.errors import ConfigurationError, VidstageError
from vidstage.models.pipeline import PipelineStage, PipelineState
from vidstage.models.request import PipelineRequest
from vidstage.models.result import PipelineResult
from vidstage.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)


class PipelineManager:
    """Registry of jobs, each run by its own orchestrator task.

    Every job owns its PipelineState; nothing about one run is shared with
    another beyond the working directory.
    """

    def __init__(self, orchestrator: PipelineOrchestrator | None = None):
        self.orchestrator = orchestrator or PipelineOrchestrator()
        self._jobs: dict[str, PipelineState] = {}
        self._requests: dict[str, PipelineRequest] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def create_job(self, request: PipelineRequest) -> PipelineState:
        """Register a new processing job."""
        job_id = uuid.uuid4().hex
        now = datetime.now(UTC)
        state = PipelineState(
            job_id=job_id,
            started_at=now,
            updated_at=now,
            source_video_path=str(request.source_video_path),
        )
        self._jobs[job_id] = state
        self._requests[job_id] = request
        return state

    def get_job_state(self, job_id: str) -> PipelineState | None:
        """Get current state of a job."""
        return self._jobs.get(job_id)

    async def process(self, job_id: str) -> PipelineResult:
        """Run a registered job to completion."""
        if job_id not in self._jobs:
            raise ConfigurationError(f"Job {job_id} not found")
        return await self.orchestrator.run(
            self._requests[job_id], job_id=job_id, state=self._jobs[job_id]
        )

    def start(self, job_id: str) -> asyncio.Task:
        """Schedule a job on the running event loop."""
        if job_id not in self._jobs:
            raise ConfigurationError(f"Job {job_id} not found")
        if job_id in self._tasks:
            raise ConfigurationError(f"Job {job_id} already started")
        task = asyncio.create_task(self._process_logged(job_id), name=f"vidstage-{job_id}")
        task.add_done_callback(lambda t: self._mark_cancelled(job_id, t))
        self._tasks[job_id] = task
        return task

    async def _process_logged(self, job_id: str) -> PipelineResult | None:
        try:
            return await self.process(job_id)
        except VidstageError as e:
            # State already records the failure; background jobs report through it
            logger.warning("Job %s ended in %s: %s", job_id, e.stage, e.message)
            return None

    def _mark_cancelled(self, job_id: str, task: asyncio.Task) -> None:
        # A task cancelled before its first step never reaches the orchestrator
        state = self._jobs.get(job_id)
        if task.cancelled() and state is not None and not state.stage.is_terminal:
            state.advance(PipelineStage.CANCELLED, message="Job cancelled")

    def cancel_job(self, job_id: str) -> bool:
        """Cancel a job. Returns False for unknown jobs."""
        state = self._jobs.get(job_id)
        if state is None:
            return False
        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            task.cancel()
        elif not state.stage.is_terminal:
            state.advance(PipelineStage.CANCELLED, message="Job cancelled")
        return True

    def delete_job_data(self, job_id: str) -> None:
        """Forget a job. The final output file, if any, is left in place."""
        self.cancel_job(job_id)
        self._jobs.pop(job_id, None)
        self._requests.pop(job_id, None)
        self._tasks.pop(job_id, None)
