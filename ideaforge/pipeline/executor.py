# ideaforge/pipeline/executor.py
"""
Generation step executor.

Runs one step's generation call and persistence call and turns every
failure into a StepResult, so the runner never sees a step exception.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ideaforge.errors import FatalStepError
from ideaforge.llm.retry import generation_retrying
from ideaforge.models.artifacts import Artifact
from ideaforge.models.store import ArtifactStore
from ideaforge.pipeline.generator import Generator
from ideaforge.pipeline.steps import GenerationStep

logger = logging.getLogger(__name__)


class StepOutcome(Enum):
    """Terminal outcome of one step."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class StepResult:
    """
    Result of executing a generation step.

    Attributes:
        step_name: Name of the step that produced this result
        outcome: SUCCESS or FAILURE
        artifact: Persisted artifact (SUCCESS only)
        error: Error message (FAILURE only)
        fatal: True if the failure must stop the whole job
    """

    step_name: str
    outcome: StepOutcome
    artifact: Artifact | None = None
    error: str | None = None
    fatal: bool = False

    @property
    def succeeded(self) -> bool:
        return self.outcome is StepOutcome.SUCCESS


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class StepExecutor:
    """
    Executes exactly one step: generate (retry once if transient), then persist.

    Persistence is not retried. Generated content that could not be saved
    counts as a failed step.
    """

    def __init__(
        self,
        generator: Generator,
        artifact_store: ArtifactStore,
        retry_wait: float = 2.0,
        step_timeout: float | None = None,
    ) -> None:
        """
        Args:
            generator: Generation collaborator
            artifact_store: Persistence collaborator
            retry_wait: Seconds before the single retry of a transient error
            step_timeout: Per-attempt generation timeout (None = rely on the client)
        """
        self._generator = generator
        self._artifacts = artifact_store
        self._retry_wait = retry_wait
        self._step_timeout = step_timeout

    async def execute(
        self,
        step: GenerationStep,
        context: dict[str, Any],
        owner_entity_id: str,
    ) -> StepResult:
        """
        Run one step. Never raises except on task cancellation.

        Args:
            step: Step definition
            context: Input context (job inputs + dependency artifacts)
            owner_entity_id: Project to attach the artifact to

        Returns:
            StepResult describing success or failure
        """
        try:
            payload = await self._generate(step, context)
        except FatalStepError as e:
            logger.error(f"[{step.name}] Fatal error during generation: {e}")
            return StepResult(step.name, StepOutcome.FAILURE, error=_describe(e), fatal=True)
        except Exception as e:
            logger.error(f"[{step.name}] Generation failed: {_describe(e)}")
            return StepResult(step.name, StepOutcome.FAILURE, error=_describe(e))

        try:
            artifact = await self._artifacts.attach_artifact(owner_entity_id, step.name, payload)
        except FatalStepError as e:
            logger.error(f"[{step.name}] Fatal error while saving artifact: {e}")
            return StepResult(step.name, StepOutcome.FAILURE, error=_describe(e), fatal=True)
        except Exception as e:
            logger.error(f"[{step.name}] Generated content could not be saved: {_describe(e)}")
            return StepResult(
                step.name,
                StepOutcome.FAILURE,
                error=f"Failed to save {step.label}: {_describe(e)}",
            )

        logger.info(f"[{step.name}] Step succeeded (artifact {artifact.artifact_id})")
        return StepResult(step.name, StepOutcome.SUCCESS, artifact=artifact)

    async def _generate(self, step: GenerationStep, context: dict[str, Any]) -> Any:
        """Call the generator, retrying exactly once on transient errors."""
        payload: Any = None
        async for attempt in generation_retrying(self._retry_wait):
            with attempt:
                call = self._generator.generate(step.name, context)
                if self._step_timeout is not None:
                    payload = await asyncio.wait_for(call, timeout=self._step_timeout)
                else:
                    payload = await call
        return payload
