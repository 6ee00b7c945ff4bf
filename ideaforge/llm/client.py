# ideaforge/llm/client.py
"""Ollama client for step generation."""

import logging
import time

import httpx
from ollama import AsyncClient

logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Async Ollama chat client.

    Streams the reply and returns the accumulated text. Retries are left to
    the step executor so a transient failure is retried exactly once there.

    Attributes:
        model_available: Result of the last health check's model lookup
            (None until a health check ran)
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: int = 300,
        temperature: float | None = None,
        num_ctx: int | None = None,
    ):
        """
        Args:
            base_url: Ollama API base URL (e.g., "http://localhost:11434")
            model: Model name (e.g., "qwen2.5:14b-instruct")
            timeout: Request timeout in seconds (generous for model loading)
            temperature: Sampling temperature (None = model default)
            num_ctx: Context window size (None = model default)
        """
        self.base_url = base_url
        self.model = model
        self.model_available: bool | None = None
        self.client = AsyncClient(host=base_url, timeout=httpx.Timeout(timeout))

        self._options: dict[str, float | int] = {}
        if temperature is not None:
            self._options["temperature"] = temperature
        if num_ctx is not None:
            self._options["num_ctx"] = num_ctx

    async def health_check(self) -> bool:
        """
        Check that the Ollama server answers.

        A missing model is only a warning, Ollama pulls it on first use.

        Returns:
            True if the server is reachable, False otherwise
        """
        try:
            listing = await self.client.list()
        except Exception as e:
            logger.error(f"Health check against {self.base_url} failed: {e}")
            return False

        names = [m.get("name") or m.get("model") for m in listing.get("models", [])]
        base = self.model.split(":")[0]
        self.model_available = any(n and (n == self.model or base in n) for n in names)
        if not self.model_available:
            logger.warning(f"Model {self.model} is not pulled yet; Ollama will fetch it on first use")
        return True

    async def generate(
        self, messages: list[dict], model: str | None = None, json_mode: bool = False
    ) -> str:
        """
        Generate a reply with streaming.

        Args:
            messages: Chat messages in format [{"role": "user", "content": "..."}]
            model: Model to use (defaults to self.model)
            json_mode: Ask Ollama to constrain the reply to JSON

        Returns:
            Full accumulated response text

        Raises:
            ResponseError: On API errors
            httpx.TimeoutException: If the request exceeds the client timeout
        """
        model = model or self.model
        kwargs = {"model": model, "messages": messages, "stream": True}
        if json_mode:
            kwargs["format"] = "json"
        if self._options:
            kwargs["options"] = self._options

        started = time.monotonic()
        parts: list[str] = []
        done_reason = None
        async for chunk in await self.client.chat(**kwargs):
            if content := chunk.get("message", {}).get("content"):
                parts.append(content)
            if chunk.get("done"):
                done_reason = chunk.get("done_reason")

        text = "".join(parts)
        if done_reason == "length":
            # Output hit num_predict/num_ctx; JSON repair may still salvage it
            logger.warning(f"{model} stopped at the token limit after {len(text)} chars")
        logger.info(f"{model} generated {len(text)} chars in {time.monotonic() - started:.1f}s")
        return text
