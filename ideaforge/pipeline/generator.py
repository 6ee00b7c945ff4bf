# ideaforge/pipeline/generator.py
"""
Generation collaborator: turns a step name plus input context into a payload.

The pipeline treats generation as a black box behind the Generator
interface. LLMGenerator is the production implementation backed by Ollama.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ideaforge.pipeline.parsing import extract_json
from ideaforge.pipeline.prompts import build_messages

if TYPE_CHECKING:
    from ideaforge.llm.client import OllamaClient

logger = logging.getLogger(__name__)


class Generator(ABC):
    """Produces the payload for one named step."""

    @abstractmethod
    async def generate(self, step_name: str, input_context: dict[str, Any]) -> Any:
        """
        Generate one artifact payload.

        Args:
            step_name: Step to generate
            input_context: Job inputs plus artifacts of the step's dependencies

        Returns:
            JSON-serializable payload the artifact store accepts

        Raises:
            Exception: Any failure; the executor classifies and contains it
        """
        pass


class LLMGenerator(Generator):
    """Prompt the LLM for a step and parse its JSON answer."""

    def __init__(self, client: "OllamaClient") -> None:
        self._client = client

    async def generate(self, step_name: str, input_context: dict[str, Any]) -> Any:
        messages = build_messages(step_name, input_context)
        raw = await self._client.generate(messages=messages, json_mode=True)
        logger.debug(f"[{step_name}] raw model output: {raw[:200]!r}")

        return extract_json(raw)
