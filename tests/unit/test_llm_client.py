# tests/unit/test_llm_client.py
"""Tests for OllamaClient and transient-error classification."""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from ollama import ResponseError

from ideaforge.errors import OwnerNotFoundError, TransientGenerationError
from ideaforge.llm import OllamaClient, is_transient


def _client() -> OllamaClient:
    return OllamaClient(base_url="http://localhost:11434", model="qwen2.5:14b-instruct")


class TestIsTransient:
    @pytest.mark.parametrize(
        "exc",
        [
            TransientGenerationError("busy"),
            TimeoutError(),
            asyncio.TimeoutError(),
            ConnectionError("refused"),
            httpx.ConnectTimeout("slow"),
            httpx.ConnectError("refused"),
            ResponseError("rate limited", status_code=429),
            ResponseError("bad gateway", status_code=502),
            ResponseError("internal error", status_code=500),
        ],
    )
    def test_transient(self, exc):
        assert is_transient(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("bad json"),
            ResponseError("model not found", status_code=404),
            ResponseError("model requires more system memory than available", status_code=500),
            OwnerNotFoundError("proj00000001"),
            KeyError("x"),
        ],
    )
    def test_not_transient(self, exc):
        assert is_transient(exc) is False


class TestOllamaClientHealthCheck:
    @pytest.mark.asyncio
    async def test_health_check_success(self):
        client = _client()

        with patch.object(client.client, "list", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = {"models": [{"name": "qwen2.5:14b-instruct"}]}

            assert await client.health_check() is True
            mock_list.assert_called_once()

    @pytest.mark.asyncio
    async def test_health_check_model_missing_still_healthy(self):
        """Health check returns True even if model not in list (can be pulled on demand)."""
        client = _client()

        with patch.object(client.client, "list", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = {"models": [{"name": "llama3:8b"}]}

            assert await client.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_server_down(self):
        client = _client()

        with patch.object(client.client, "list", new_callable=AsyncMock) as mock_list:
            mock_list.side_effect = ConnectionError("Connection refused")

            assert await client.health_check() is False


class TestOllamaClientGenerate:
    @pytest.mark.asyncio
    async def test_generate_streams_and_accumulates(self):
        client = _client()
        chunks = [
            {"message": {"content": '{"title": '}},
            {"message": {"content": '"PipeCRM"}'}},
            {"message": {}},
        ]

        async def mock_stream():
            for chunk in chunks:
                yield chunk

        with patch.object(client.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = mock_stream()

            result = await client.generate([{"role": "user", "content": "Hi"}])

        assert result == '{"title": "PipeCRM"}'
        assert mock_chat.call_args.kwargs["model"] == "qwen2.5:14b-instruct"
        assert mock_chat.call_args.kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_generate_does_not_retry_itself(self):
        """Retries belong to the step executor, so the client raises on first error."""
        client = _client()

        with patch.object(client.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.side_effect = ResponseError("Service unavailable", status_code=503)

            with pytest.raises(ResponseError):
                await client.generate([{"role": "user", "content": "Hi"}])

        assert mock_chat.call_count == 1

    @pytest.mark.asyncio
    async def test_generate_json_mode_passes_format_and_options(self):
        client = OllamaClient(
            base_url="http://localhost:11434",
            model="qwen2.5:14b-instruct",
            temperature=0.3,
            num_ctx=8192,
        )

        async def mock_stream():
            yield {"message": {"content": "{}"}, "done": True, "done_reason": "stop"}

        with patch.object(client.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = mock_stream()

            await client.generate([{"role": "user", "content": "Hi"}], json_mode=True)

        kwargs = mock_chat.call_args.kwargs
        assert kwargs["format"] == "json"
        assert kwargs["options"] == {"temperature": 0.3, "num_ctx": 8192}

    @pytest.mark.asyncio
    async def test_generate_plain_mode_sends_no_format(self):
        client = _client()

        async def mock_stream():
            yield {"message": {"content": "hello"}, "done": True, "done_reason": "length"}

        with patch.object(client.client, "chat", new_callable=AsyncMock) as mock_chat:
            mock_chat.return_value = mock_stream()

            result = await client.generate([{"role": "user", "content": "Hi"}])

        assert result == "hello"
        assert "format" not in mock_chat.call_args.kwargs
        assert "options" not in mock_chat.call_args.kwargs
