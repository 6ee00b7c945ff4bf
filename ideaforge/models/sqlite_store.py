# ideaforge/models/sqlite_store.py
"""
SQLite-backed progress and artifact persistence.

Provides async operations with WAL mode and IMMEDIATE transactions
so progress survives the caller going away and concurrent jobs can
write their own rows safely.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from ideaforge.errors import OwnerNotFoundError
from ideaforge.models.artifacts import Artifact, Project, generate_entity_id
from ideaforge.models.jobs import GenerationJob, JobStatus
from ideaforge.models.ownership import JobOwner
from ideaforge.models.schema import init_db
from ideaforge.models.store import ArtifactStore, ProgressStore

logger = logging.getLogger(__name__)

RESTART_ERROR = "Process restarted during generation"
DEFAULT_STALE_AFTER = 300.0


async def _checkpoint_wal(db_path: str) -> None:
    """Truncate the WAL file to avoid unbounded growth."""
    try:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            logger.info("WAL checkpoint completed")
    except Exception as e:
        logger.warning(f"WAL checkpoint failed: {e}")


class SQLiteProgressStore(ProgressStore):
    """
    Async SQLite-backed progress storage.

    Features:
        - WAL mode for concurrent reads/writes
        - IMMEDIATE transactions for write safety
        - Every write stamps the owning process and a heartbeat
        - Restart recovery (orphaned pending/running → failed, progress kept)
        - No persistent connections (avoids resource leaks)
    """

    def __init__(
        self,
        db_path: str,
        owner: JobOwner | None = None,
        stale_after: float = DEFAULT_STALE_AFTER,
    ) -> None:
        """
        Initialize SQLite progress store.

        Args:
            db_path: Path to SQLite database file
            owner: Process recorded as owner of written jobs (defaults to this one)
            stale_after: Seconds without a heartbeat after which a job owned
                by a process on another host counts as orphaned
        """
        self._db_path = db_path
        self._owner = owner or JobOwner.current()
        self._stale_after = stale_after
        logger.info(f"Created SQLiteProgressStore with path: {db_path}")

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def owner(self) -> JobOwner:
        return self._owner

    async def initialize(self, recover: bool = True) -> list[str]:
        """
        Initialize database schema and perform restart recovery.

        Jobs whose owning process is gone are never resumed. They are marked
        failed; their last percentage and message stay readable. Jobs still
        owned by a live process (another server, a CLI run) are left alone.

        Args:
            recover: Skip recovery entirely (read-only CLI commands)

        Returns:
            Ids of the jobs that recovery marked failed
        """
        await init_db(self._db_path)
        if not recover:
            return []

        now = datetime.now(timezone.utc)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")

            try:
                cursor = await db.execute(
                    "SELECT id, owner_pid, owner_host, owner_started, heartbeat_at "
                    "FROM jobs WHERE status IN (?, ?)",
                    (JobStatus.PENDING.value, JobStatus.RUNNING.value),
                )
                rows = await cursor.fetchall()
                recovered = [row["id"] for row in rows if self._is_orphaned(row, now)]
                kept = len(rows) - len(recovered)

                for job_id in recovered:
                    await db.execute(
                        "UPDATE jobs SET status = ?, last_error = ?, updated_at = ? "
                        "WHERE id = ? AND status IN (?, ?)",
                        (
                            JobStatus.FAILED.value,
                            RESTART_ERROR,
                            now.isoformat(),
                            job_id,
                            JobStatus.PENDING.value,
                            JobStatus.RUNNING.value,
                        ),
                    )
                await db.commit()

            except Exception:
                await db.rollback()
                raise

        if recovered:
            logger.warning(
                f"Restart recovery: marked {len(recovered)} unfinished job(s) as failed"
            )
        if kept:
            logger.info(f"Restart recovery: {kept} job(s) still owned by a live process")
        return recovered

    def _is_orphaned(self, row: aiosqlite.Row, now: datetime) -> bool:
        """Decide whether an unfinished job's owner is gone."""
        if row["owner_pid"] is None:
            # Written before ownership was recorded
            return True

        owner = JobOwner(
            pid=row["owner_pid"],
            host=row["owner_host"] or "",
            started_at=row["owner_started"] or 0.0,
        )
        if owner.is_local():
            return not owner.is_running()

        if not row["heartbeat_at"]:
            return True
        silent_for = now - datetime.fromisoformat(row["heartbeat_at"])
        return silent_for.total_seconds() > self._stale_after

    async def heartbeat(self, job_ids: list[str]) -> None:
        """
        Refresh the heartbeat of unfinished jobs owned by this process.

        Args:
            job_ids: Jobs this process is running
        """
        if not job_ids:
            return

        placeholders = ", ".join("?" for _ in job_ids)
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("BEGIN IMMEDIATE")
            await db.execute(
                f"UPDATE jobs SET heartbeat_at = ? "
                f"WHERE id IN ({placeholders}) AND status IN (?, ?) "
                f"AND owner_pid = ? AND owner_host = ?",
                (
                    datetime.now(timezone.utc).isoformat(),
                    *job_ids,
                    JobStatus.PENDING.value,
                    JobStatus.RUNNING.value,
                    self._owner.pid,
                    self._owner.host,
                ),
            )
            await db.commit()
        logger.debug(f"Heartbeat for {len(job_ids)} job(s)")

    async def write(self, job: GenerationJob) -> None:
        """
        Upsert a job snapshot (last writer wins).

        Args:
            job: Snapshot to store

        Raises:
            ValueError: If the stored record is already terminal
        """
        now = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("BEGIN IMMEDIATE")

            try:
                cursor = await db.execute(
                    "SELECT status FROM jobs WHERE id = ?", (job.job_id,)
                )
                row = await cursor.fetchone()
                if row and JobStatus(row[0]) in (JobStatus.COMPLETED, JobStatus.FAILED):
                    raise ValueError(
                        f"Job {job.job_id} is already {row[0]} and cannot be modified"
                    )

                await db.execute(
                    """
                    INSERT INTO jobs (
                        id, owner_entity_id, status, progress_percent,
                        progress_message, last_error, step_names,
                        created_at, updated_at,
                        owner_pid, owner_host, owner_started, heartbeat_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        status = excluded.status,
                        progress_percent = excluded.progress_percent,
                        progress_message = excluded.progress_message,
                        last_error = excluded.last_error,
                        step_names = excluded.step_names,
                        updated_at = excluded.updated_at,
                        owner_pid = excluded.owner_pid,
                        owner_host = excluded.owner_host,
                        owner_started = excluded.owner_started,
                        heartbeat_at = excluded.heartbeat_at
                    """,
                    (
                        job.job_id,
                        job.owner_entity_id,
                        job.status.value,
                        job.progress_percent,
                        job.progress_message,
                        job.last_error,
                        json.dumps(job.step_names),
                        job.created_at.isoformat(),
                        now,
                        self._owner.pid,
                        self._owner.host,
                        self._owner.started_at,
                        now,
                    ),
                )

                await db.commit()
                logger.debug(
                    f"Wrote job {job.job_id}: {job.status.value} {job.progress_percent}%"
                )

            except Exception:
                await db.rollback()
                raise

    async def read(self, job_id: str) -> GenerationJob | None:
        """
        Get a job snapshot by ID.

        Args:
            job_id: Job identifier

        Returns:
            GenerationJob if found, None otherwise
        """
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
            row = await cursor.fetchone()

            if not row:
                return None

            return self._row_to_job(row)

    async def list_all(self) -> list[GenerationJob]:
        """
        List all job snapshots.

        Returns:
            All jobs, ordered by creation time (newest first)
        """
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM jobs ORDER BY created_at DESC")
            rows = await cursor.fetchall()

            return [self._row_to_job(row) for row in rows]

    async def close(self) -> None:
        """Checkpoint WAL before shutdown."""
        await _checkpoint_wal(self._db_path)

    def _row_to_job(self, row: aiosqlite.Row) -> GenerationJob:
        """
        Convert SQLite row to GenerationJob.

        Args:
            row: SQLite row (with row_factory=aiosqlite.Row)
        """
        return GenerationJob(
            job_id=row["id"],
            owner_entity_id=row["owner_entity_id"],
            status=JobStatus(row["status"]),
            progress_percent=row["progress_percent"],
            progress_message=row["progress_message"] or "",
            last_error=row["last_error"],
            step_names=json.loads(row["step_names"]) if row["step_names"] else [],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"])
            if row["updated_at"]
            else None,
        )


class SQLiteArtifactStore(ArtifactStore):
    """
    Async SQLite-backed project and artifact storage.

    Artifacts are append-only rows; the revision number is assigned inside
    the same IMMEDIATE transaction that inserts the row.
    """

    def __init__(self, db_path: str) -> None:
        """
        Initialize SQLite artifact store.

        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        logger.info(f"Created SQLiteArtifactStore with path: {db_path}")

    async def initialize(self) -> None:
        """Initialize database schema (shared with the progress store)."""
        await init_db(self._db_path)

    async def create_project(self, idea: str) -> Project:
        project = Project(project_id=generate_entity_id(), idea=idea)
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO projects (id, idea, created_at) VALUES (?, ?, ?)",
                (project.project_id, project.idea, project.created_at.isoformat()),
            )
            await db.commit()
        logger.info(f"Created project {project.project_id}")
        return project

    async def get_project(self, project_id: str) -> Project | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM projects WHERE id = ?", (project_id,))
            row = await cursor.fetchone()

            if not row:
                return None

            return Project(
                project_id=row["id"],
                idea=row["idea"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )

    async def delete_project(self, project_id: str) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("BEGIN IMMEDIATE")

            try:
                cursor = await db.execute("DELETE FROM projects WHERE id = ?", (project_id,))
                if cursor.rowcount == 0:
                    raise OwnerNotFoundError(project_id)
                await db.execute(
                    "DELETE FROM artifacts WHERE owner_entity_id = ?", (project_id,)
                )
                await db.commit()
                logger.info(f"Deleted project {project_id}")

            except Exception:
                await db.rollback()
                raise

    async def attach_artifact(
        self, owner_entity_id: str, step_name: str, payload: Any
    ) -> Artifact:
        payload_json = json.dumps(payload)

        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("BEGIN IMMEDIATE")

            try:
                cursor = await db.execute(
                    "SELECT id FROM projects WHERE id = ?", (owner_entity_id,)
                )
                if not await cursor.fetchone():
                    raise OwnerNotFoundError(owner_entity_id)

                cursor = await db.execute(
                    "SELECT COALESCE(MAX(revision), 0) FROM artifacts "
                    "WHERE owner_entity_id = ? AND step_name = ?",
                    (owner_entity_id, step_name),
                )
                row = await cursor.fetchone()
                revision = row[0] + 1

                artifact = Artifact(
                    artifact_id=generate_entity_id(),
                    owner_entity_id=owner_entity_id,
                    step_name=step_name,
                    payload=json.loads(payload_json),
                    revision=revision,
                )
                await db.execute(
                    """
                    INSERT INTO artifacts (
                        id, owner_entity_id, step_name, revision, payload, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        artifact.artifact_id,
                        owner_entity_id,
                        step_name,
                        revision,
                        payload_json,
                        artifact.created_at.isoformat(),
                    ),
                )

                await db.commit()
                logger.info(
                    f"Attached '{step_name}' artifact r{revision} to project {owner_entity_id}"
                )
                return artifact

            except Exception:
                await db.rollback()
                raise

    async def list_artifacts(self, owner_entity_id: str) -> list[Artifact]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT a.* FROM artifacts a
                JOIN (
                    SELECT step_name, MAX(revision) AS revision FROM artifacts
                    WHERE owner_entity_id = ? GROUP BY step_name
                ) latest
                ON a.step_name = latest.step_name AND a.revision = latest.revision
                WHERE a.owner_entity_id = ?
                ORDER BY a.created_at ASC
                """,
                (owner_entity_id, owner_entity_id),
            )
            rows = await cursor.fetchall()

            return [
                Artifact(
                    artifact_id=row["id"],
                    owner_entity_id=row["owner_entity_id"],
                    step_name=row["step_name"],
                    payload=json.loads(row["payload"]),
                    revision=row["revision"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]

    async def close(self) -> None:
        """Checkpoint WAL before shutdown."""
        await _checkpoint_wal(self._db_path)
