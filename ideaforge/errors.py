# ideaforge/errors.py
"""
Exception types shared by the pipeline, stores, and tool layer.
"""


class PipelineConfigError(ValueError):
    """Step configuration is invalid (duplicate names, bad weights, unknown dependencies)."""


class FatalStepError(Exception):
    """
    Error class that halts a job immediately.

    Raised by collaborators when continuing makes no sense, e.g. the
    owning project was deleted while the pipeline was running.
    """


class OwnerNotFoundError(FatalStepError):
    """The owning entity (project) no longer exists."""

    def __init__(self, owner_entity_id: str) -> None:
        super().__init__(f"Project {owner_entity_id} not found")
        self.owner_entity_id = owner_entity_id


class TransientGenerationError(Exception):
    """Generation failed for a reason worth retrying (rate limit, flaky network)."""
