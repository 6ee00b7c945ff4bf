# ideaforge/models/artifacts.py
"""
Project and artifact models with in-memory storage.

A Project is the owning entity a generation job attaches artifacts to.
Artifacts are immutable; re-running a step adds a new revision.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ideaforge.errors import OwnerNotFoundError
from ideaforge.models.store import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Project:
    """Owning entity created before a pipeline starts."""

    project_id: str
    idea: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Artifact:
    """Persisted output of one successful generation step."""

    artifact_id: str
    owner_entity_id: str
    step_name: str
    payload: Any
    revision: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def generate_entity_id() -> str:
    """12-character hex id for projects and artifacts."""
    return uuid4().hex[:12]


class InMemoryArtifactStore(ArtifactStore):
    """
    In-memory project/artifact storage for tests and single-process use.

    Payloads are round-tripped through JSON so non-serializable results fail
    at attach time, like they would against a real document store.
    """

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._artifacts: dict[str, list[Artifact]] = {}
        logger.info("Initialized InMemoryArtifactStore")

    async def create_project(self, idea: str) -> Project:
        project = Project(project_id=generate_entity_id(), idea=idea)
        self._projects[project.project_id] = project
        self._artifacts[project.project_id] = []
        logger.info(f"Created project {project.project_id}")
        return project

    async def get_project(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    async def delete_project(self, project_id: str) -> None:
        if project_id not in self._projects:
            raise OwnerNotFoundError(project_id)
        del self._projects[project_id]
        self._artifacts.pop(project_id, None)
        logger.info(f"Deleted project {project_id}")

    async def attach_artifact(
        self, owner_entity_id: str, step_name: str, payload: Any
    ) -> Artifact:
        if owner_entity_id not in self._projects:
            raise OwnerNotFoundError(owner_entity_id)

        stored_payload = json.loads(json.dumps(payload))
        existing = self._artifacts[owner_entity_id]
        revision = 1 + sum(1 for a in existing if a.step_name == step_name)

        artifact = Artifact(
            artifact_id=generate_entity_id(),
            owner_entity_id=owner_entity_id,
            step_name=step_name,
            payload=stored_payload,
            revision=revision,
        )
        existing.append(artifact)
        logger.info(
            f"Attached '{step_name}' artifact r{revision} to project {owner_entity_id}"
        )
        return artifact

    async def list_artifacts(self, owner_entity_id: str) -> list[Artifact]:
        latest: dict[str, Artifact] = {}
        for artifact in self._artifacts.get(owner_entity_id, []):
            latest[artifact.step_name] = artifact
        return sorted(latest.values(), key=lambda a: (a.created_at, a.revision))
