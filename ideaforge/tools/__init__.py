# ideaforge/tools/__init__.py
"""MCP tool implementations shared by the server and the CLI."""
