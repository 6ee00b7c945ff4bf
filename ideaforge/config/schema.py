# ideaforge/config/schema.py
"""
Pydantic configuration models for ideaforge.

All models use extra="ignore" to allow unknown YAML keys without crashing.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class OllamaConfig(BaseModel):
    """Ollama server configuration."""

    model_config = ConfigDict(extra="ignore")

    base_url: str = Field(
        default="http://localhost:11434", description="Ollama API base URL"
    )
    model: str = Field(
        default="qwen2.5:14b-instruct",
        description="Ollama model used for artifact generation",
    )
    timeout: int = Field(
        default=300, description="Request timeout in seconds (generous for model loading)"
    )
    temperature: float | None = Field(
        default=0.3, ge=0.0, le=2.0, description="Sampling temperature (None = model default)"
    )
    num_ctx: int | None = Field(
        default=8192, gt=0, description="Context window in tokens (None = model default)"
    )


class StepConfig(BaseModel):
    """One step of a custom generation catalogue."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(description="Unique step name (e.g. 'sprint-plan')")
    weight: int = Field(ge=0, le=100, description="Progress percent this step contributes")
    required: bool = Field(
        default=True, description="If true, failure of this step fails the job"
    )
    depends_on: list[str] = Field(
        default_factory=list, description="Earlier steps whose artifacts feed this step"
    )
    description: str | None = Field(
        default=None, description="Label used in progress messages"
    )


class PipelineConfig(BaseModel):
    """Generation pipeline behavior."""

    model_config = ConfigDict(extra="ignore")

    poll_interval: float = Field(
        default=2.0,
        gt=0.0,
        description="Seconds between progress polls for subscribers",
    )
    retry_wait: float = Field(
        default=2.0,
        ge=0.0,
        description="Seconds to wait before the single retry of a transient generation error",
    )
    step_timeout: float | None = Field(
        default=600.0,
        gt=0.0,
        description="Per-call generation timeout in seconds (None disables)",
    )
    steps: list[StepConfig] | None = Field(
        default=None,
        description="Custom step catalogue (None = built-in project planning steps)",
    )


class StorageConfig(BaseModel):
    """Progress and artifact storage configuration."""

    model_config = ConfigDict(extra="ignore")

    db_path: str | None = Field(
        default=None,
        description="SQLite database path (None = ideaforge user data directory)",
    )
    heartbeat_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between heartbeats of jobs this process runs",
    )
    stale_after: float = Field(
        default=300.0,
        gt=0,
        description="Seconds without a heartbeat before a job owned by another host counts as orphaned",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Root log level"
    )


class IdeaForgeConfig(BaseModel):
    """Root configuration for ideaforge."""

    model_config = ConfigDict(extra="ignore")

    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
