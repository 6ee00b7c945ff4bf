# ideaforge/pipeline/runner.py
"""
Pipeline runner.

Sequences the steps of one job and owns the job's state transitions:
pending → running → completed | failed. Every transition goes through
ProgressStore.write; the runner is the only writer for its job id.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ideaforge.models.jobs import GenerationJob, JobStatus
from ideaforge.models.store import ProgressStore
from ideaforge.pipeline.executor import StepExecutor
from ideaforge.pipeline.steps import GenerationStep, validate_steps

logger = logging.getLogger(__name__)


class PipelineRunner:
    """
    Runs a job's steps strictly in order.

    Workflow:
    1. Mark the job running at 0%
    2. For each step: announce it, execute it, add its weight whatever
       the outcome, announce the result
    3. Required-step failure marks the job for failure but later steps
       still run; a fatal failure stops the loop immediately
    4. Write the terminal state once

    Example:
        runner = PipelineRunner(store, StepExecutor(generator, artifacts))
        final = await runner.run(job, DEFAULT_STEPS, {"idea": "..."})
    """

    def __init__(self, store: ProgressStore, executor: StepExecutor) -> None:
        """
        Args:
            store: Progress store all job writes go through
            executor: Executor for individual steps
        """
        self._store = store
        self._executor = executor

    async def run(
        self,
        job: GenerationJob,
        steps: Sequence[GenerationStep],
        inputs: Mapping[str, Any] | None = None,
    ) -> GenerationJob:
        """
        Execute the pipeline for one job.

        Args:
            job: Job snapshot in pending state (owned by this runner from now on)
            steps: Ordered step definitions
            inputs: Job-level inputs shared by every step (e.g. {"idea": ...})

        Returns:
            The terminal job snapshot

        Raises:
            PipelineConfigError: If steps are invalid (before any write)
        """
        validate_steps(steps)
        inputs = dict(inputs or {})
        job.step_names = [s.name for s in steps]

        if not steps:
            logger.info(f"Job {job.job_id} has no steps, completing immediately")
            job.progress_percent = 100
            return await self._finish(job, failed=False)

        job.status = JobStatus.RUNNING
        job.progress_percent = 0
        job.progress_message = "Starting generation..."
        await self._store.write(job)
        logger.info(
            f"Job {job.job_id} running {len(steps)} steps for {job.owner_entity_id}: "
            f"{job.step_names}"
        )

        outputs: dict[str, Any] = {}
        failed = False

        try:
            for step in steps:
                job.progress_message = step.starting_message()
                await self._store.write(job)

                context = self._build_context(step, inputs, outputs)
                result = await self._executor.execute(step, context, job.owner_entity_id)

                # Attempted steps consume their weight, successful or not
                job.progress_percent += step.weight
                job.progress_message = step.finished_message(result.succeeded)

                if result.succeeded:
                    outputs[step.name] = result.artifact.payload
                else:
                    job.last_error = f"{step.name}: {result.error}"
                    if result.fatal:
                        logger.error(
                            f"Job {job.job_id}: fatal failure at '{step.name}', "
                            "skipping remaining steps"
                        )
                        failed = True
                        break
                    if step.required:
                        logger.warning(
                            f"Job {job.job_id}: required step '{step.name}' failed, "
                            "continuing to produce remaining artifacts"
                        )
                        failed = True
                    else:
                        logger.warning(
                            f"Job {job.job_id}: optional step '{step.name}' failed"
                        )

                await self._store.write(job)

        except asyncio.CancelledError:
            logger.warning(f"Job {job.job_id} cancelled at {job.progress_percent}%")
            raise

        except Exception as e:
            logger.exception(f"Job {job.job_id}: pipeline error")
            job.last_error = f"{type(e).__name__}: {e}"
            failed = True

        return await self._finish(job, failed=failed)

    async def _finish(self, job: GenerationJob, failed: bool) -> GenerationJob:
        """Write the terminal state (best effort if the store itself is failing)."""
        if failed:
            job.status = JobStatus.FAILED
            job.progress_message = "Generation failed"
        else:
            job.status = JobStatus.COMPLETED
            job.progress_message = (
                "Generation complete (some optional artifacts are missing)"
                if job.last_error
                else "Generation complete"
            )

        try:
            await self._store.write(job)
        except Exception as e:
            logger.error(f"Job {job.job_id}: could not write final state: {e}")

        logger.info(
            f"Job {job.job_id} {job.status.value} at {job.progress_percent}%"
            + (f" (last error: {job.last_error})" if job.last_error else "")
        )
        return job

    @staticmethod
    def _build_context(
        step: GenerationStep, inputs: dict[str, Any], outputs: dict[str, Any]
    ) -> dict[str, Any]:
        """Job inputs plus the payloads of this step's successful dependencies."""
        context = dict(inputs)
        for dep in step.depends_on:
            if dep in outputs:
                context[dep] = outputs[dep]
            else:
                logger.info(f"[{step.name}] dependency '{dep}' has no artifact")
        return context
