# ideaforge/models/__init__.py
"""
Data models for ideaforge.

Provides job snapshots, project/artifact records, storage protocols,
and Pydantic response models.
"""

from ideaforge.models.artifacts import Artifact, InMemoryArtifactStore, Project
from ideaforge.models.jobs import (
    GenerationJob,
    InMemoryProgressStore,
    JobStatus,
    generate_job_id,
)
from ideaforge.models.ownership import JobOwner
from ideaforge.models.responses import (
    ArtifactsResponse,
    ArtifactView,
    JobStatusResponse,
    JobSummary,
    ListJobsResponse,
    StartGenerationResponse,
)
from ideaforge.models.store import ArtifactStore, ProgressStore

__all__ = [
    # Response models
    "StartGenerationResponse",
    "JobStatusResponse",
    "JobSummary",
    "ListJobsResponse",
    "ArtifactView",
    "ArtifactsResponse",
    # Job tracking
    "JobStatus",
    "GenerationJob",
    "InMemoryProgressStore",
    "generate_job_id",
    "JobOwner",
    # Projects and artifacts
    "Project",
    "Artifact",
    "InMemoryArtifactStore",
    # Protocols
    "ProgressStore",
    "ArtifactStore",
]
