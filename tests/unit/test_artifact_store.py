# tests/unit/test_artifact_store.py
"""Unit tests for project and artifact persistence (in-memory and SQLite)."""

from pathlib import Path

import pytest
import pytest_asyncio

from ideaforge.errors import FatalStepError, OwnerNotFoundError
from ideaforge.models.artifacts import InMemoryArtifactStore
from ideaforge.models.sqlite_store import SQLiteArtifactStore


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def artifacts(request, tmp_path: Path):
    if request.param == "memory":
        yield InMemoryArtifactStore()
        return

    store = SQLiteArtifactStore(str(tmp_path / "artifacts.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest.mark.asyncio
async def test_create_and_get_project(artifacts):
    project = await artifacts.create_project("A marketplace for used climbing gear")

    fetched = await artifacts.get_project(project.project_id)

    assert fetched is not None
    assert fetched.idea == "A marketplace for used climbing gear"
    assert len(project.project_id) == 12


@pytest.mark.asyncio
async def test_get_missing_project_returns_none(artifacts):
    assert await artifacts.get_project("missing00000") is None


@pytest.mark.asyncio
async def test_attach_artifact_assigns_revisions(artifacts):
    """Test re-running a step appends a new revision instead of overwriting."""
    project = await artifacts.create_project("idea")

    first = await artifacts.attach_artifact(project.project_id, "tech-stack", {"v": 1})
    second = await artifacts.attach_artifact(project.project_id, "tech-stack", {"v": 2})
    other = await artifacts.attach_artifact(project.project_id, "sprint-plan", {"v": 1})

    assert first.revision == 1
    assert second.revision == 2
    assert other.revision == 1
    assert second.payload == {"v": 2}


@pytest.mark.asyncio
async def test_list_artifacts_returns_latest_revision_per_step(artifacts):
    project = await artifacts.create_project("idea")
    await artifacts.attach_artifact(project.project_id, "project-structure", {"v": 1})
    await artifacts.attach_artifact(project.project_id, "tech-stack", {"v": 1})
    await artifacts.attach_artifact(project.project_id, "tech-stack", {"v": 2})

    listed = await artifacts.list_artifacts(project.project_id)

    by_step = {a.step_name: a for a in listed}
    assert set(by_step) == {"project-structure", "tech-stack"}
    assert by_step["tech-stack"].revision == 2
    assert by_step["tech-stack"].payload == {"v": 2}


@pytest.mark.asyncio
async def test_attach_to_missing_owner_is_fatal(artifacts):
    """Test attaching to a deleted project raises the fatal owner-missing error."""
    project = await artifacts.create_project("idea")
    await artifacts.delete_project(project.project_id)

    with pytest.raises(OwnerNotFoundError) as exc_info:
        await artifacts.attach_artifact(project.project_id, "tech-stack", {"v": 1})

    assert isinstance(exc_info.value, FatalStepError)
    assert exc_info.value.owner_entity_id == project.project_id


@pytest.mark.asyncio
async def test_delete_project_removes_artifacts(artifacts):
    project = await artifacts.create_project("idea")
    await artifacts.attach_artifact(project.project_id, "tech-stack", {"v": 1})

    await artifacts.delete_project(project.project_id)

    assert await artifacts.get_project(project.project_id) is None
    assert await artifacts.list_artifacts(project.project_id) == []


@pytest.mark.asyncio
async def test_delete_missing_project_raises(artifacts):
    with pytest.raises(OwnerNotFoundError):
        await artifacts.delete_project("missing00000")


@pytest.mark.asyncio
async def test_non_serializable_payload_rejected(artifacts):
    project = await artifacts.create_project("idea")

    with pytest.raises(TypeError):
        await artifacts.attach_artifact(project.project_id, "tech-stack", {"bad": object()})

    assert await artifacts.list_artifacts(project.project_id) == []
