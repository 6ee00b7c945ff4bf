# ideaforge/models/jobs.py
"""
Job tracking models and in-memory progress storage.

Internal models for generation jobs. The Pipeline Runner is the only
writer of a given job; everyone else reads snapshots.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from ideaforge.models.store import ProgressStore

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass
class GenerationJob:
    """
    Snapshot of one pipeline run for one owning entity.

    progress_percent is the sum of weights of steps that reached a
    terminal outcome, so it never regresses while the job runs.
    """

    job_id: str
    owner_entity_id: str
    status: JobStatus = JobStatus.PENDING
    progress_percent: int = 0
    progress_message: str = ""
    last_error: str | None = None
    step_names: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        """True once the job is completed or failed (immutable from then on)."""
        return self.status in TERMINAL_STATUSES


class InMemoryProgressStore(ProgressStore):
    """
    Simple in-memory progress storage.

    Single-process only. Records are copied on write and on read so callers
    never share mutable state with the store.
    """

    def __init__(self) -> None:
        """Initialize empty progress store."""
        self._jobs: dict[str, GenerationJob] = {}
        logger.info("Initialized InMemoryProgressStore")

    async def write(self, job: GenerationJob) -> None:
        """
        Upsert a job snapshot (last writer wins).

        Args:
            job: Snapshot to store

        Raises:
            ValueError: If the stored record is already terminal
        """
        existing = self._jobs.get(job.job_id)
        if existing is not None and existing.is_terminal:
            raise ValueError(
                f"Job {job.job_id} is already {existing.status.value} and cannot be modified"
            )

        record = copy.deepcopy(job)
        record.updated_at = datetime.now(timezone.utc)
        self._jobs[job.job_id] = record
        logger.debug(
            f"Wrote job {job.job_id}: {job.status.value} {job.progress_percent}%"
        )

    async def read(self, job_id: str) -> GenerationJob | None:
        """
        Get a job snapshot by ID.

        Args:
            job_id: Job identifier

        Returns:
            GenerationJob if found, None otherwise
        """
        record = self._jobs.get(job_id)
        return copy.deepcopy(record) if record is not None else None

    async def list_all(self) -> list[GenerationJob]:
        """
        List all job snapshots.

        Returns:
            All jobs, ordered by creation time (newest first)
        """
        return [
            copy.deepcopy(r)
            for r in sorted(self._jobs.values(), key=lambda r: r.created_at, reverse=True)
        ]


def generate_job_id() -> str:
    """
    Generate a unique job ID.

    Returns:
        12-character hex string (UUID4 truncated)
    """
    return uuid4().hex[:12]
