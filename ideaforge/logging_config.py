# ideaforge/logging_config.py
"""
Logging setup for the MCP server and the CLI.

CRITICAL: MCP uses stdio transport, so ALL logging must go to stderr.
No print() statements, no stdout handlers.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Libraries that log every request or query at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite")

# Libraries that install their own handlers; routed through ours instead
_ROUTED_LOGGERS = ("uvicorn", "fastmcp")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg (+ exc)."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _install(formatter: logging.Formatter, level: str | int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def configure_logging(level: str = "INFO") -> None:
    """
    Send JSON log lines to stderr.

    MUST be called before any imports that might create loggers.

    Args:
        level: Root log level name
    """
    handler = _install(JsonFormatter(), level)

    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.addHandler(handler)
        routed.setLevel(level)
        routed.propagate = False


def configure_cli_logging(level: str = "WARNING") -> None:
    """Human-readable stderr logging for interactive CLI commands."""
    _install(
        logging.Formatter("%(asctime)s  %(levelname)-7s  %(message)s", datefmt="%H:%M:%S"),
        level,
    )
