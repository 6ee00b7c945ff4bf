# ideaforge/config/__init__.py
"""Configuration system for ideaforge."""

from .loader import get_config_path, load_config
from .schema import (
    IdeaForgeConfig,
    LoggingConfig,
    OllamaConfig,
    PipelineConfig,
    StepConfig,
    StorageConfig,
)

__all__ = [
    "IdeaForgeConfig",
    "OllamaConfig",
    "PipelineConfig",
    "StepConfig",
    "StorageConfig",
    "LoggingConfig",
    "load_config",
    "get_config_path",
]
