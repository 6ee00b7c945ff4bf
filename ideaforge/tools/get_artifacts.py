# ideaforge/tools/get_artifacts.py
"""
get_artifacts tool implementation.

Returns the latest revision of every artifact attached to a project.
"""

import logging

from fastmcp.exceptions import ToolError

from ideaforge.models.responses import ArtifactsResponse, ArtifactView
from ideaforge.models.store import ArtifactStore
from ideaforge.validation.sanitize import sanitize_project_id

logger = logging.getLogger(__name__)


async def get_artifacts(project_id: str, artifacts: ArtifactStore) -> dict:
    """
    Retrieve the generated artifacts of a project.

    Args:
        project_id: Project identifier from start_generation
        artifacts: Project/artifact store

    Returns:
        ArtifactsResponse as dict

    Raises:
        ToolError: If project_id is invalid or not found
    """
    sanitized_id = sanitize_project_id(project_id)

    project = await artifacts.get_project(sanitized_id)
    if project is None:
        raise ToolError(f"Project '{sanitized_id}' not found.")

    views = [
        ArtifactView(
            step_name=a.step_name,
            revision=a.revision,
            created_at=a.created_at.isoformat(),
            payload=a.payload,
        )
        for a in await artifacts.list_artifacts(sanitized_id)
    ]

    logger.info(f"Retrieved {len(views)} artifacts for project {sanitized_id}")
    return ArtifactsResponse(
        project_id=project.project_id, idea=project.idea, artifacts=views
    ).model_dump()
