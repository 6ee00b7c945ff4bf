# ideaforge/tools/list_jobs.py
"""list_jobs tool implementation."""

import logging

from ideaforge.models.responses import JobSummary, ListJobsResponse
from ideaforge.models.store import ProgressStore

logger = logging.getLogger(__name__)


async def list_jobs(store: ProgressStore) -> dict:
    """
    List all generation jobs, newest first.

    Args:
        store: Progress store instance

    Returns:
        ListJobsResponse as dict
    """
    jobs = await store.list_all()

    summaries = [
        JobSummary(
            job_id=job.job_id,
            project_id=job.owner_entity_id,
            status=job.status.value,
            progress_percent=job.progress_percent,
            created_at=job.created_at.isoformat(),
        )
        for job in jobs
    ]

    logger.info(f"Listed {len(summaries)} generation jobs")
    return ListJobsResponse(jobs=summaries, total=len(summaries)).model_dump()
