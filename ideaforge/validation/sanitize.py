# ideaforge/validation/sanitize.py
"""
Input sanitization and validation utilities.

Every check raises ToolError so MCP clients get a readable message.
"""

import logging
import re

from fastmcp.exceptions import ToolError

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[a-zA-Z0-9-]{8,64}$")


def sanitize_idea(text: str, max_length: int = 5000) -> str:
    """
    Sanitize and validate a product idea.

    Strips whitespace and validates non-empty.
    Truncates to max_length if needed.

    Args:
        text: User-provided idea text
        max_length: Maximum allowed length (default 5000)

    Returns:
        Cleaned idea string

    Raises:
        ToolError: If the idea is empty after stripping
    """
    cleaned = text.strip()

    if not cleaned:
        raise ToolError("Idea cannot be empty")

    if len(cleaned) > max_length:
        logger.warning(f"Idea truncated from {len(cleaned)} to {max_length} characters")
        cleaned = cleaned[:max_length]

    return cleaned


def _sanitize_id(value: str, kind: str) -> str:
    value = value.strip()
    if not _ID_PATTERN.match(value):
        raise ToolError(
            f"Invalid {kind} '{value}': must be 8-64 alphanumeric characters or hyphens"
        )
    return value


def sanitize_job_id(job_id: str) -> str:
    """Validate a job ID (8-64 alphanumerics or hyphens)."""
    return _sanitize_id(job_id, "job ID")


def sanitize_project_id(project_id: str) -> str:
    """Validate a project ID (8-64 alphanumerics or hyphens)."""
    return _sanitize_id(project_id, "project ID")
