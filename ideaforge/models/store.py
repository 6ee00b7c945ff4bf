# ideaforge/models/store.py
"""
Storage protocol definitions.

ProgressStore holds job snapshots keyed by job id. ArtifactStore is the
persistence collaborator step executors attach generated artifacts to.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ideaforge.models.artifacts import Artifact, Project
    from ideaforge.models.jobs import GenerationJob


class ProgressStore(ABC):
    """
    Abstract base class for job progress storage.

    Both in-memory and persistent (SQLite) stores implement this protocol.
    There is no delete: retention is the owning application's concern.
    """

    @abstractmethod
    async def write(self, job: "GenerationJob") -> None:
        """
        Upsert a job snapshot (last writer wins).

        Args:
            job: Snapshot to store

        Raises:
            ValueError: If the stored record is already terminal
        """
        pass

    @abstractmethod
    async def read(self, job_id: str) -> "GenerationJob | None":
        """
        Get a job snapshot by ID.

        Args:
            job_id: Job identifier

        Returns:
            GenerationJob if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_all(self) -> "list[GenerationJob]":
        """
        List all job snapshots.

        Returns:
            All jobs, ordered by creation time (newest first)
        """
        pass

    async def close(self) -> None:
        """Release resources (no-op by default)."""


class ArtifactStore(ABC):
    """
    Abstract base class for project and artifact persistence.

    Attaching is append-only: every call creates a new artifact revision,
    so concurrent edits to the project never conflict with generation.
    """

    @abstractmethod
    async def create_project(self, idea: str) -> "Project":
        """
        Create the owning entity for a generation job.

        Args:
            idea: The user's natural-language product idea

        Returns:
            The created Project
        """
        pass

    @abstractmethod
    async def get_project(self, project_id: str) -> "Project | None":
        """Get a project by ID (None if missing)."""
        pass

    @abstractmethod
    async def delete_project(self, project_id: str) -> None:
        """
        Delete a project and its artifacts.

        Raises:
            OwnerNotFoundError: If the project doesn't exist
        """
        pass

    @abstractmethod
    async def attach_artifact(
        self, owner_entity_id: str, step_name: str, payload: Any
    ) -> "Artifact":
        """
        Persist one step's output as a new artifact revision.

        Args:
            owner_entity_id: Project the artifact belongs to
            step_name: Step that produced the payload
            payload: JSON-serializable generation result

        Returns:
            The stored Artifact

        Raises:
            OwnerNotFoundError: If the project no longer exists
        """
        pass

    @abstractmethod
    async def list_artifacts(self, owner_entity_id: str) -> "list[Artifact]":
        """
        List the latest revision of each artifact for a project.

        Returns:
            Artifacts ordered by creation time (oldest first)
        """
        pass

    async def close(self) -> None:
        """Release resources (no-op by default)."""
