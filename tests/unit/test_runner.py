# tests/unit/test_runner.py
"""
Unit tests for PipelineRunner.

Scenarios cover all-success, tolerated optional failure, required failure
(remaining steps still run), fatal failure (loop stops) and invalid
configuration, plus the progress-monotonicity and zero-step edge cases.
"""

import pytest

from ideaforge.errors import OwnerNotFoundError, PipelineConfigError
from ideaforge.models.jobs import GenerationJob, InMemoryProgressStore, JobStatus
from ideaforge.pipeline.executor import StepExecutor
from ideaforge.pipeline.runner import PipelineRunner
from ideaforge.pipeline.steps import GenerationStep


class RecordingStore(InMemoryProgressStore):
    """Progress store that keeps every written snapshot."""

    def __init__(self, fail_on_write: int | None = None):
        super().__init__()
        self.history: list[GenerationJob] = []
        self._fail_on_write = fail_on_write

    async def write(self, job: GenerationJob) -> None:
        if self._fail_on_write is not None and len(self.history) + 1 == self._fail_on_write:
            self._fail_on_write = None
            raise RuntimeError("database is locked")
        await super().write(job)
        self.history.append(await self.read(job.job_id))


def _steps(weights, optional=(), names=None):
    names = names or [f"s{i + 1}" for i in range(len(weights))]
    return [
        GenerationStep(name=n, weight=w, required=n not in optional)
        for n, w in zip(names, weights)
    ]


async def _run(store, artifact_store, generator, steps, owner=None):
    if owner is None:
        owner = (await artifact_store.create_project("A CRM for plumbers")).project_id
    runner = PipelineRunner(store, StepExecutor(generator, artifact_store, retry_wait=0))
    job = GenerationJob(job_id="abc123def456", owner_entity_id=owner)
    await store.write(job)
    final = await runner.run(job, steps, {"idea": "A CRM for plumbers"})
    return final, owner


@pytest.mark.asyncio
async def test_all_steps_succeed(artifact_store, make_generator):
    """Scenario A: four equal steps succeed → completed at 100."""
    store = RecordingStore()
    generator = make_generator()

    final, owner = await _run(store, artifact_store, generator, _steps([25, 25, 25, 25]))

    assert final.status == JobStatus.COMPLETED
    assert final.progress_percent == 100
    assert final.last_error is None
    assert final.progress_message == "Generation complete"
    assert generator.called_steps() == ["s1", "s2", "s3", "s4"]
    assert len(await artifact_store.list_artifacts(owner)) == 4

    stored = await store.read("abc123def456")
    assert stored.status == JobStatus.COMPLETED


@pytest.mark.asyncio
async def test_optional_step_failure_is_tolerated(artifact_store, make_generator):
    """Scenario B: optional step 2 fails → completed at 100 with its error recorded."""
    store = RecordingStore()
    generator = make_generator({"s2": [ValueError("model returned prose")]})

    final, owner = await _run(
        store, artifact_store, generator, _steps([10, 40, 40, 10], optional={"s2"})
    )

    assert final.status == JobStatus.COMPLETED
    assert final.progress_percent == 100
    assert final.last_error == "s2: ValueError: model returned prose"
    assert "optional" in final.progress_message

    artifact_steps = {a.step_name for a in await artifact_store.list_artifacts(owner)}
    assert artifact_steps == {"s1", "s3", "s4"}


@pytest.mark.asyncio
async def test_required_step_failure_still_runs_remaining_steps(artifact_store, make_generator):
    """Scenario C: required step 1 fails → steps 2 and 3 run; failed at 100."""
    store = RecordingStore()
    generator = make_generator({"s1": [ValueError("bad output")]})

    final, owner = await _run(store, artifact_store, generator, _steps([30, 30, 40]))

    assert final.status == JobStatus.FAILED
    assert final.progress_percent == 100
    assert final.last_error == "s1: ValueError: bad output"
    assert generator.called_steps() == ["s1", "s2", "s3"]
    artifact_steps = {a.step_name for a in await artifact_store.list_artifacts(owner)}
    assert artifact_steps == {"s2", "s3"}


@pytest.mark.asyncio
async def test_fatal_failure_stops_remaining_steps(artifact_store, make_generator):
    """Scenario D: fatal owner-missing error at step 1 → failed at 50, step 2 never runs."""
    store = RecordingStore()
    generator = make_generator({"s1": [OwnerNotFoundError("proj00000001")]})

    final, _ = await _run(store, artifact_store, generator, _steps([50, 50]))

    assert final.status == JobStatus.FAILED
    assert final.progress_percent == 50
    assert "OwnerNotFoundError" in final.last_error
    assert generator.called_steps() == ["s1"]


@pytest.mark.asyncio
async def test_owner_deleted_mid_run_is_fatal(artifact_store, make_generator):
    """Test the owning project disappearing stops the job at the next attach."""
    store = RecordingStore()
    owner = (await artifact_store.create_project("idea")).project_id
    generator = make_generator()
    await artifact_store.delete_project(owner)

    final, _ = await _run(store, artifact_store, generator, _steps([50, 50]), owner=owner)

    assert final.status == JobStatus.FAILED
    assert final.progress_percent == 50
    assert generator.called_steps() == ["s1"]


@pytest.mark.asyncio
async def test_duplicate_step_names_rejected_before_any_write(artifact_store, make_generator):
    """Scenario E: duplicate names are a configuration error; the job is untouched."""
    store = RecordingStore()
    runner = PipelineRunner(store, StepExecutor(make_generator(), artifact_store, retry_wait=0))
    job = GenerationJob(job_id="abc123def456", owner_entity_id="proj00000001")

    with pytest.raises(PipelineConfigError, match="Duplicate step name 's1'"):
        await runner.run(job, _steps([50, 50], names=["s1", "s1"]))

    assert store.history == []


@pytest.mark.asyncio
async def test_zero_steps_completes_immediately(artifact_store, make_generator):
    store = RecordingStore()
    generator = make_generator()

    final, _ = await _run(store, artifact_store, generator, [])

    assert final.status == JobStatus.COMPLETED
    assert final.progress_percent == 100
    assert generator.calls == []
    assert [s.status for s in store.history] == [JobStatus.PENDING, JobStatus.COMPLETED]


@pytest.mark.asyncio
async def test_progress_is_monotonic_and_terminal_written_once(artifact_store, make_generator):
    store = RecordingStore()
    generator = make_generator({"s2": [ValueError("x")]})

    await _run(store, artifact_store, generator, _steps([10, 40, 40, 10], optional={"s2"}))

    percents = [s.progress_percent for s in store.history]
    assert percents == sorted(percents)
    assert sum(1 for s in store.history if s.is_terminal) == 1
    assert store.history[-1].is_terminal
    assert store.history[1].status == JobStatus.RUNNING
    assert store.history[1].progress_percent == 0


@pytest.mark.asyncio
async def test_progress_messages_announce_each_step(artifact_store, make_generator):
    store = RecordingStore()
    steps = [
        GenerationStep(name="project-structure", weight=50, description="project structure"),
        GenerationStep(name="tech-stack", weight=50, required=False, description="tech stack"),
    ]
    generator = make_generator({"tech-stack": [ValueError("x")]})

    await _run(store, artifact_store, generator, steps)

    messages = [s.progress_message for s in store.history]
    assert "Generating project structure..." in messages
    assert "Project structure ready" in messages
    assert "Generating tech stack..." in messages
    assert "Tech stack failed" in messages


@pytest.mark.asyncio
async def test_dependency_artifacts_feed_input_context(artifact_store, make_generator):
    """Test a step receives the idea plus payloads of its successful dependencies only."""
    store = RecordingStore()
    steps = [
        GenerationStep(name="a", weight=30),
        GenerationStep(name="b", weight=30, required=False),
        GenerationStep(name="c", weight=40, depends_on=("a", "b")),
    ]
    generator = make_generator({"a": [{"dirs": ["src"]}], "b": [ValueError("x")]})

    await _run(store, artifact_store, generator, steps)

    contexts = dict(generator.calls)
    assert contexts["a"] == {"idea": "A CRM for plumbers"}
    assert contexts["c"] == {"idea": "A CRM for plumbers", "a": {"dirs": ["src"]}}


@pytest.mark.asyncio
async def test_store_error_mid_run_fails_job(artifact_store, make_generator):
    """Test an unexpected runner error is contained and the job ends failed."""
    # Writes: pending(1), running(2), s1 starting(3) → fail on the 4th (s1 result)
    store = RecordingStore(fail_on_write=4)
    generator = make_generator()

    final, _ = await _run(store, artifact_store, generator, _steps([50, 50]))

    assert final.status == JobStatus.FAILED
    assert final.last_error == "RuntimeError: database is locked"
    assert generator.called_steps() == ["s1"]
    assert (await store.read("abc123def456")).status == JobStatus.FAILED
