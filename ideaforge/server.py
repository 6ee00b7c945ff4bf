# ideaforge/server.py
"""
FastMCP server instance with tool registration.

CRITICAL: configure_logging() is called first to prevent stdout pollution.
All logging goes to stderr as JSON.
"""

# Configure logging FIRST before any other imports
from ideaforge.logging_config import configure_logging

configure_logging()

# Now safe to import everything else
import logging

from fastmcp import FastMCP

from ideaforge.background.lifecycle import ServiceLifecycle
from ideaforge.config.loader import get_db_path, load_config
from ideaforge.config.schema import IdeaForgeConfig
from ideaforge.tools.check_status import check_status as _check_status
from ideaforge.tools.get_artifacts import get_artifacts as _get_artifacts
from ideaforge.tools.list_jobs import list_jobs as _list_jobs
from ideaforge.tools.start_generation import start_generation as _start_generation

logger = logging.getLogger(__name__)

mcp = FastMCP("ideaforge")

_config = load_config()
logging.getLogger().setLevel(_config.logging.level)
logger.info(f"Loaded configuration: model={_config.ollama.model}")

# Lifecycle manager (initialized by __main__.py)
_lifecycle: ServiceLifecycle | None = None


def get_lifecycle() -> ServiceLifecycle:
    """
    Get the running lifecycle manager.

    Raises:
        RuntimeError: If lifecycle not initialized (should never happen)
    """
    if _lifecycle is None:
        raise RuntimeError("Server lifecycle not initialized. Call initialize_lifecycle() first.")
    return _lifecycle


async def initialize_lifecycle(config: IdeaForgeConfig | None = None) -> None:
    """
    Initialize the server lifecycle (DB + restart recovery + signals).

    Must be called before any tool calls. Called by __main__.py on startup.

    Args:
        config: IdeaForgeConfig instance (defaults to module-level _config if None)
    """
    global _lifecycle

    actual_config = config or _config
    db_path = get_db_path(actual_config)
    logger.info(f"Initializing lifecycle with db_path={db_path}")

    _lifecycle = ServiceLifecycle(str(db_path), config=actual_config)
    await _lifecycle.startup()

    logger.info("Lifecycle initialized: SQLite + generation service + signals ready")


async def shutdown_lifecycle() -> None:
    """Stop the generation service and close the database (no-op if never started)."""
    if _lifecycle is not None:
        await _lifecycle.shutdown()


@mcp.tool()
async def start_generation(idea: str) -> dict:
    """Start generating a project plan (structure, tech stack, sprints, costs, docs) for an idea."""
    lifecycle = get_lifecycle()
    return await _start_generation(
        idea, service=lifecycle.service, artifacts=lifecycle.artifacts, config=lifecycle.config
    )


@mcp.tool()
async def check_status(job_id: str) -> dict:
    """Check a generation job. Returns status, progress percent, and current step."""
    return await _check_status(job_id, store=get_lifecycle().store)


@mcp.tool()
async def list_jobs() -> dict:
    """List all generation jobs with their status and progress."""
    return await _list_jobs(store=get_lifecycle().store)


@mcp.tool()
async def get_artifacts(project_id: str) -> dict:
    """Retrieve the generated artifacts of a project."""
    return await _get_artifacts(project_id, artifacts=get_lifecycle().artifacts)


logger.info("MCP server initialized with 4 tools")
