# ideaforge/background/service.py
"""
Generation service: the pipeline's control surface.

start() returns a job id as soon as the job is recorded; the runner then
executes on its own asyncio task, detached from the caller. Observers use
subscribe() or get_snapshot() with the job id.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ideaforge.background.notifier import JobNotifier, OnUpdate, Subscription
from ideaforge.models.jobs import GenerationJob, generate_job_id
from ideaforge.models.store import ProgressStore
from ideaforge.pipeline.runner import PipelineRunner
from ideaforge.pipeline.steps import GenerationStep, validate_steps

logger = logging.getLogger(__name__)


class GenerationService:
    """
    Starts detached pipeline runs and exposes their progress.

    Features:
        - Fire-and-forget start (one asyncio task per job)
        - Jobs for different owners run concurrently
        - No mid-flight cancellation; shutdown() only tears tasks down
    """

    def __init__(
        self,
        store: ProgressStore,
        runner: PipelineRunner,
        notifier: JobNotifier,
    ) -> None:
        """
        Args:
            store: Progress store (shared with runner and notifier)
            runner: Pipeline runner executing each job
            notifier: Subscription factory for observers
        """
        self._store = store
        self._runner = runner
        self._notifier = notifier
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def running_job_ids(self) -> list[str]:
        """Ids of jobs with an in-process runner task still alive."""
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    async def start(
        self,
        owner_entity_id: str,
        steps: Sequence[GenerationStep],
        inputs: Mapping[str, Any] | None = None,
    ) -> str:
        """
        Record a new job and launch its pipeline without waiting for it.

        Args:
            owner_entity_id: Project the artifacts are attached to
            steps: Ordered step definitions
            inputs: Job-level inputs passed to every step

        Returns:
            The new job id

        Raises:
            PipelineConfigError: If steps are invalid (no job is created)
        """
        steps = list(steps)
        validate_steps(steps)

        job = GenerationJob(
            job_id=generate_job_id(),
            owner_entity_id=owner_entity_id,
            progress_message="Waiting to start...",
            step_names=[s.name for s in steps],
        )
        await self._store.write(job)

        task = asyncio.create_task(
            self._run(job, steps, dict(inputs or {})), name=f"generation-{job.job_id}"
        )
        self._tasks[job.job_id] = task
        task.add_done_callback(lambda _t, job_id=job.job_id: self._tasks.pop(job_id, None))

        logger.info(
            f"Started job {job.job_id} for {owner_entity_id} ({len(steps)} steps)"
        )
        return job.job_id

    async def _run(
        self, job: GenerationJob, steps: list[GenerationStep], inputs: dict[str, Any]
    ) -> None:
        try:
            await self._runner.run(job, steps, inputs)
        except asyncio.CancelledError:
            logger.warning(f"Runner task for job {job.job_id} cancelled")
            raise
        except Exception:
            logger.exception(f"Runner for job {job.job_id} crashed")

    async def get_snapshot(self, job_id: str) -> GenerationJob:
        """
        Read the current state of a job.

        Raises:
            ValueError: If the job doesn't exist
        """
        snapshot = await self._store.read(job_id)
        if snapshot is None:
            raise ValueError(f"Job {job_id} not found")
        return snapshot

    async def subscribe(self, job_id: str, on_update: OnUpdate) -> Subscription:
        """
        Observe a job's progress (see JobNotifier.subscribe).

        Raises:
            ValueError: If the job doesn't exist
        """
        return await self._notifier.subscribe(job_id, on_update)

    async def join(self, job_id: str) -> GenerationJob:
        """
        Wait for an in-process job to finish and return its final snapshot.

        Jobs started by another process are not awaited; their current
        snapshot is returned.
        """
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return await self.get_snapshot(job_id)

    async def shutdown(self) -> None:
        """
        Tear down runner tasks and subscriptions.

        Interrupted jobs keep their last written progress and are marked
        failed by restart recovery; they are not resumed.
        """
        self._notifier.close_all()

        tasks = list(self._tasks.values())
        if not tasks:
            return

        logger.warning(f"Shutting down with {len(tasks)} job(s) still running")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
