# tests/unit/conftest.py
"""Shared fixtures: in-memory stores and a scripted generator."""

import asyncio
from typing import Any

import pytest

from ideaforge.models.artifacts import InMemoryArtifactStore
from ideaforge.models.jobs import InMemoryProgressStore
from ideaforge.pipeline.generator import Generator


class ScriptedGenerator(Generator):
    """
    Generator whose behaviour per step is scripted by the test.

    script maps a step name to a list of outcomes consumed one per call:
    an Exception instance is raised, anything else is returned. Once the
    list is exhausted (or for unscripted steps) the default payload is returned.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None, gate: asyncio.Event | None = None):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.gate = gate
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def generate(self, step_name: str, input_context: dict[str, Any]) -> Any:
        self.calls.append((step_name, dict(input_context)))
        if self.gate is not None:
            await self.gate.wait()

        outcomes = self.script.get(step_name)
        if outcomes:
            outcome = outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return {"step": step_name}

    def called_steps(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def progress_store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def artifact_store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def make_generator():
    """Factory for ScriptedGenerator instances."""
    return ScriptedGenerator
