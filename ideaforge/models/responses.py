# ideaforge/models/responses.py
"""
Pydantic response models for MCP tool outputs.

All tools return structured responses using these models for consistency.
"""

from typing import Any

from pydantic import BaseModel, Field


class StartGenerationResponse(BaseModel):
    """Response from start_generation tool."""

    job_id: str = Field(description="Unique job identifier for tracking")
    project_id: str = Field(description="Project the artifacts are attached to")
    status: str = Field(description="Job status (always 'pending' for new jobs)")
    steps: list[str] = Field(description="Ordered generation steps the job will run")
    model: str = Field(description="LLM model that will be used")
    next_steps: str = Field(
        description="Instructions for monitoring job progress",
        default="Use check_status with job_id to monitor progress",
    )


class JobStatusResponse(BaseModel):
    """Response from check_status tool."""

    job_id: str = Field(description="Job identifier")
    project_id: str = Field(description="Owning project identifier")
    status: str = Field(description="Current job status (pending/running/completed/failed)")
    progress_percent: int = Field(ge=0, le=100, description="Completion progress (0-100)")
    progress_message: str = Field(default="", description="Current step description")
    message: str | None = Field(
        default=None, description="Human-readable status message"
    )
    last_error: str | None = Field(
        default=None, description="Most recent step or job error"
    )


class JobSummary(BaseModel):
    """Summary information for a single job (used in list_jobs)."""

    job_id: str = Field(description="Job identifier")
    project_id: str = Field(description="Owning project identifier")
    status: str = Field(description="Current job status")
    progress_percent: int = Field(ge=0, le=100, description="Completion progress (0-100)")
    created_at: str = Field(description="Creation timestamp (ISO format)")


class ListJobsResponse(BaseModel):
    """Response from list_jobs tool."""

    jobs: list[JobSummary] = Field(default_factory=list, description="List of all jobs")
    total: int = Field(description="Total number of jobs")


class ArtifactView(BaseModel):
    """One stored artifact (latest revision)."""

    step_name: str = Field(description="Step that produced the artifact")
    revision: int = Field(ge=1, description="Artifact revision for this step")
    created_at: str = Field(description="Creation timestamp (ISO format)")
    payload: Any = Field(description="Generated content")


class ArtifactsResponse(BaseModel):
    """Response from get_artifacts tool."""

    project_id: str = Field(description="Project identifier")
    idea: str = Field(description="Original product idea")
    artifacts: list[ArtifactView] = Field(default_factory=list)
