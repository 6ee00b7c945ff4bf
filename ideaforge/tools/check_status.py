# ideaforge/tools/check_status.py
"""
check_status tool implementation.

Retrieves a job's status and progress snapshot.
"""

import logging

from fastmcp.exceptions import ToolError

from ideaforge.models.jobs import GenerationJob, JobStatus
from ideaforge.models.responses import JobStatusResponse
from ideaforge.models.store import ProgressStore
from ideaforge.validation.sanitize import sanitize_job_id

logger = logging.getLogger(__name__)


def _status_message(job: GenerationJob) -> str:
    if job.status == JobStatus.PENDING:
        return "Job is waiting to start."
    if job.status == JobStatus.RUNNING:
        return f"Job is running: {job.progress_message} ({job.progress_percent}%)"
    if job.status == JobStatus.COMPLETED:
        if job.last_error:
            return f"Job complete; an optional step failed ({job.last_error})."
        return "Job complete. Use get_artifacts with the project_id to read the results."
    return f"Job failed: {job.last_error or 'Unknown error'}"


async def check_status(job_id: str, store: ProgressStore) -> dict:
    """
    Check the status of a generation job.

    Args:
        job_id: Job identifier from start_generation
        store: Progress store instance

    Returns:
        JobStatusResponse as dict

    Raises:
        ToolError: If job_id is invalid or not found
    """
    sanitized_id = sanitize_job_id(job_id)

    job = await store.read(sanitized_id)
    if job is None:
        raise ToolError(f"Job '{sanitized_id}' not found. Use list_jobs to see available jobs.")

    response = JobStatusResponse(
        job_id=job.job_id,
        project_id=job.owner_entity_id,
        status=job.status.value,
        progress_percent=job.progress_percent,
        progress_message=job.progress_message,
        message=_status_message(job),
        last_error=job.last_error,
    )
    return response.model_dump()
