# ideaforge/llm/__init__.py
"""LLM client and retry policy."""

from .client import OllamaClient
from .retry import generation_retrying, is_transient

__all__ = ["OllamaClient", "generation_retrying", "is_transient"]
