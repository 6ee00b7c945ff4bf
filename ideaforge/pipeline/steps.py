# ideaforge/pipeline/steps.py
"""
Generation step definitions and the built-in project planning catalogue.

Steps run strictly in declaration order; depends_on documents which
earlier artifacts feed a step and selects what goes into its input context.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ideaforge.errors import PipelineConfigError

if TYPE_CHECKING:
    from ideaforge.config.schema import IdeaForgeConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationStep:
    """
    One named generation-and-persist unit within a job.

    Attributes:
        name: Unique step identifier (e.g. "sprint-plan")
        weight: Percent of total progress added when the step finishes
        required: If True, failure of this step fails the job
        depends_on: Earlier step names whose artifacts feed this step
        description: Label for progress messages (defaults to the name)
    """

    name: str
    weight: int
    required: bool = True
    depends_on: tuple[str, ...] = ()
    description: str | None = None

    @property
    def label(self) -> str:
        return self.description or self.name.replace("-", " ").replace("_", " ")

    def starting_message(self) -> str:
        return f"Generating {self.label}..."

    def finished_message(self, succeeded: bool) -> str:
        label = self.label[:1].upper() + self.label[1:]
        return f"{label} ready" if succeeded else f"{label} failed"


# Built-in catalogue, in the order the planning flow produces artifacts
DEFAULT_STEPS: tuple[GenerationStep, ...] = (
    GenerationStep(
        name="project-structure",
        weight=20,
        required=True,
        description="project structure",
    ),
    GenerationStep(
        name="tech-stack",
        weight=20,
        required=True,
        depends_on=("project-structure",),
        description="tech stack recommendations",
    ),
    GenerationStep(
        name="sprint-plan",
        weight=30,
        required=True,
        depends_on=("project-structure", "tech-stack"),
        description="sprint plan",
    ),
    GenerationStep(
        name="cost-estimate",
        weight=15,
        required=False,
        depends_on=("project-structure", "tech-stack"),
        description="cost estimate",
    ),
    GenerationStep(
        name="documentation",
        weight=15,
        required=False,
        depends_on=("project-structure", "tech-stack", "sprint-plan"),
        description="documentation",
    ),
)


def create_steps(config: "IdeaForgeConfig | None" = None) -> list[GenerationStep]:
    """
    Build the step list for a job.

    Args:
        config: Config with an optional custom catalogue under pipeline.steps

    Returns:
        Steps from config if declared, otherwise DEFAULT_STEPS
    """
    if config is None or config.pipeline.steps is None:
        return list(DEFAULT_STEPS)

    return [
        GenerationStep(
            name=s.name,
            weight=s.weight,
            required=s.required,
            depends_on=tuple(s.depends_on),
            description=s.description,
        )
        for s in config.pipeline.steps
    ]


def validate_steps(steps: Sequence[GenerationStep]) -> None:
    """
    Check a step list before any job is created.

    Rules: names are unique, weights are non-negative and sum to 100
    (an empty list is allowed), and every dependency names a step
    declared earlier.

    Raises:
        PipelineConfigError: On the first violation found
    """
    seen: set[str] = set()
    for step in steps:
        if not step.name:
            raise PipelineConfigError("Step name cannot be empty")
        if step.name in seen:
            raise PipelineConfigError(f"Duplicate step name '{step.name}'")
        if step.weight < 0:
            raise PipelineConfigError(
                f"Step '{step.name}' has negative weight {step.weight}"
            )
        for dep in step.depends_on:
            if dep not in seen:
                raise PipelineConfigError(
                    f"Step '{step.name}' depends on '{dep}', which is not declared before it"
                )
        seen.add(step.name)

    total = sum(step.weight for step in steps)
    if steps and total != 100:
        raise PipelineConfigError(f"Step weights must sum to 100, got {total}")
