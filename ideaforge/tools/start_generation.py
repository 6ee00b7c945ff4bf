# ideaforge/tools/start_generation.py
"""
start_generation tool implementation.

Validates the idea, creates the owning project and starts a generation job.
"""

import logging

from fastmcp.exceptions import ToolError

from ideaforge.background.service import GenerationService
from ideaforge.config.schema import IdeaForgeConfig
from ideaforge.errors import PipelineConfigError
from ideaforge.models.responses import StartGenerationResponse
from ideaforge.models.store import ArtifactStore
from ideaforge.pipeline.steps import create_steps, validate_steps
from ideaforge.validation.sanitize import sanitize_idea

logger = logging.getLogger(__name__)


async def start_generation(
    idea: str,
    service: GenerationService,
    artifacts: ArtifactStore,
    config: IdeaForgeConfig,
) -> dict:
    """
    Start generating project artifacts for a product idea.

    Returns as soon as the job is recorded; the pipeline runs in the background.

    Args:
        idea: Product idea to plan
        service: Generation control surface
        artifacts: Project/artifact store
        config: Configuration instance (model + step catalogue)

    Returns:
        StartGenerationResponse as dict

    Raises:
        ToolError: If the idea is invalid or the step catalogue is misconfigured
    """
    cleaned_idea = sanitize_idea(idea)

    steps = create_steps(config)
    try:
        validate_steps(steps)
    except PipelineConfigError as e:
        raise ToolError(f"Invalid step configuration: {e}")

    project = await artifacts.create_project(cleaned_idea)
    job_id = await service.start(project.project_id, steps, {"idea": cleaned_idea})

    logger.info(f"Started generation job {job_id} for project {project.project_id}")

    response = StartGenerationResponse(
        job_id=job_id,
        project_id=project.project_id,
        status="pending",
        steps=[s.name for s in steps],
        model=config.ollama.model,
    )
    return response.model_dump()
