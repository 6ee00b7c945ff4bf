# ideaforge/validation/__init__.py
"""Input validation and sanitization utilities."""

from .sanitize import sanitize_idea, sanitize_job_id, sanitize_project_id

__all__ = [
    "sanitize_idea",
    "sanitize_job_id",
    "sanitize_project_id",
]
