# ideaforge/pipeline/__init__.py
"""
Generation pipeline.

Exports:
    - PipelineRunner: Sequences a job's steps and owns its state transitions
    - StepExecutor: Runs one step, never raising
    - GenerationStep / DEFAULT_STEPS: Step definitions
    - Generator / LLMGenerator: Generation collaborator
"""

from ideaforge.pipeline.executor import StepExecutor, StepOutcome, StepResult
from ideaforge.pipeline.generator import Generator, LLMGenerator
from ideaforge.pipeline.runner import PipelineRunner
from ideaforge.pipeline.steps import (
    DEFAULT_STEPS,
    GenerationStep,
    create_steps,
    validate_steps,
)

__all__ = [
    "PipelineRunner",
    "StepExecutor",
    "StepOutcome",
    "StepResult",
    "Generator",
    "LLMGenerator",
    "GenerationStep",
    "DEFAULT_STEPS",
    "create_steps",
    "validate_steps",
]
