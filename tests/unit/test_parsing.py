# tests/unit/test_parsing.py
"""Tests for JSON extraction from model output and the LLM-backed generator."""

from unittest.mock import AsyncMock

import pytest

from ideaforge.pipeline.generator import LLMGenerator
from ideaforge.pipeline.parsing import extract_json
from ideaforge.pipeline.prompts import SYSTEM_PROMPT, build_messages


class TestExtractJson:
    def test_plain_json(self):
        assert extract_json('{"title": "Gearswap"}') == {"title": "Gearswap"}

    def test_json_array(self):
        assert extract_json('[1, 2, 3]') == [1, 2, 3]

    def test_code_fence_with_prose(self):
        raw = 'Here is the plan:\n```json\n{"sprints": [{"number": 1}]}\n```\nGood luck!'
        assert extract_json(raw) == {"sprints": [{"number": 1}]}

    def test_fence_without_language_tag(self):
        raw = '```\n{"a": 1}\n```'
        assert extract_json(raw) == {"a": 1}

    def test_surrounding_prose_and_trailing_commas(self):
        raw = 'Sure! {"frontend": ["React", "Vue",], "backend": ["FastAPI"],} Hope this helps.'
        assert extract_json(raw) == {"frontend": ["React", "Vue"], "backend": ["FastAPI"]}

    def test_comment_lines_removed(self):
        raw = '```json\n{\n  // recommended first\n  "database": ["Postgres"]\n}\n```'
        assert extract_json(raw) == {"database": ["Postgres"]}

    def test_truncated_object_is_closed(self):
        raw = '{"title": "App", "features": ["login", "search"'
        assert extract_json(raw) == {"title": "App", "features": ["login", "search"]}

    def test_truncated_inside_string(self):
        raw = '{"title": "App", "overview": "A platform that lets climbers swap ge'
        result = extract_json(raw)
        assert result["title"] == "App"
        assert result["overview"].startswith("A platform")

    def test_truncated_after_key_drops_dangling_member(self):
        raw = '{"title": "App", "tiers": [{"users": 1000}, {"users":'
        result = extract_json(raw)
        assert result["title"] == "App"
        assert result["tiers"][0] == {"users": 1000}

    @pytest.mark.parametrize("raw", ["", "   \n", None])
    def test_empty_output_raises(self, raw):
        with pytest.raises(ValueError, match="empty"):
            extract_json(raw)

    def test_no_json_raises(self):
        with pytest.raises(ValueError, match="Could not extract valid JSON"):
            extract_json("I'm sorry, I can't help with that.")


class TestBuildMessages:
    def test_known_step_includes_idea_schema_and_dependencies(self):
        messages = build_messages(
            "tech-stack",
            {"idea": "A CRM for plumbers", "project-structure": {"title": "PipeCRM"}},
        )

        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        user = messages[1]["content"]
        assert 'Product idea: "A CRM for plumbers"' in user
        assert "PROJECT-STRUCTURE (from an earlier step)" in user
        assert '"title": "PipeCRM"' in user
        assert '"frontend"' in user

    def test_unknown_step_uses_generic_instruction(self):
        messages = build_messages("risk-register", {"idea": "x"})

        user = messages[1]["content"]
        assert "Produce the 'risk-register' artifact" in user
        assert "Respond with a single JSON object." in user


class TestLLMGenerator:
    @pytest.mark.asyncio
    async def test_generate_parses_model_output(self):
        client = AsyncMock()
        client.generate = AsyncMock(return_value='```json\n{"frontend": ["Svelte"]}\n```')
        generator = LLMGenerator(client)

        payload = await generator.generate("tech-stack", {"idea": "A habit tracker"})

        assert payload == {"frontend": ["Svelte"]}
        messages = client.generate.call_args.kwargs["messages"]
        assert "A habit tracker" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_unparseable_output_raises_value_error(self):
        client = AsyncMock()
        client.generate = AsyncMock(return_value="no json here")

        with pytest.raises(ValueError):
            await LLMGenerator(client).generate("tech-stack", {"idea": "x"})
