# ideaforge/__main__.py
"""
Entry point for the ideaforge MCP server.

CRITICAL: Server imports configure_logging() first to prevent stdout pollution.
"""

import asyncio
import logging

# Import server (which configures logging before anything else)
from ideaforge.server import initialize_lifecycle, mcp, shutdown_lifecycle

logger = logging.getLogger(__name__)


async def main() -> None:
    """
    Start the generation service, then serve MCP over stdio.

    FastMCP has no lifecycle hooks, so startup and shutdown wrap the
    transport here. Jobs still running when the client disconnects are
    torn down and failed by restart recovery on the next start.
    """
    await initialize_lifecycle()
    try:
        logger.info("Starting MCP server on stdio transport")
        await mcp.run_stdio_async()
    finally:
        await shutdown_lifecycle()


if __name__ == "__main__":
    asyncio.run(main())
