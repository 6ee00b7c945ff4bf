# ideaforge/models/schema.py
"""
Database schema definition for SQLite progress and artifact persistence.

Provides DDL for tables, indexes, and schema initialization.
"""

import logging

import aiosqlite

logger = logging.getLogger(__name__)

# Schema version for future migrations
SCHEMA_VERSION = 2

JOBS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    owner_entity_id TEXT NOT NULL,
    status TEXT NOT NULL CHECK(status IN ('pending', 'running', 'completed', 'failed')),
    progress_percent INTEGER DEFAULT 0 CHECK(progress_percent >= 0 AND progress_percent <= 100),
    progress_message TEXT NOT NULL DEFAULT '',
    last_error TEXT,
    step_names TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    owner_pid INTEGER,
    owner_host TEXT,
    owner_started REAL,
    heartbeat_at TEXT
)
"""

PROJECTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    idea TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""

# No FK to projects: artifacts of a deleted project are removed explicitly
ARTIFACTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS artifacts (
    id TEXT PRIMARY KEY,
    owner_entity_id TEXT NOT NULL,
    step_name TEXT NOT NULL,
    revision INTEGER NOT NULL,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(owner_entity_id, step_name, revision)
)
"""

JOBS_INDEX_SQL = "CREATE INDEX IF NOT EXISTS idx_jobs_owner ON jobs(owner_entity_id)"
ARTIFACTS_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_artifacts_owner_step "
    "ON artifacts(owner_entity_id, step_name, revision)"
)


async def _get_schema_version(db: aiosqlite.Connection) -> int:
    """
    Get current schema version from database.

    Returns:
        Schema version (0 if no version table exists)
    """
    try:
        cursor = await db.execute("SELECT version FROM schema_version LIMIT 1")
        row = await cursor.fetchone()
        return row[0] if row else 0
    except aiosqlite.OperationalError:
        return 0


async def _set_schema_version(db: aiosqlite.Connection, version: int) -> None:
    """Set schema version in database."""
    await db.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER)")
    await db.execute("DELETE FROM schema_version")
    await db.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))


# Columns added in v2: the process that owns a job and its last sign of life
_OWNERSHIP_COLUMNS = (
    ("owner_pid", "INTEGER"),
    ("owner_host", "TEXT"),
    ("owner_started", "REAL"),
    ("heartbeat_at", "TEXT"),
)


async def _migrate_v1_to_v2(db: aiosqlite.Connection) -> None:
    """
    Migrate schema from v1 to v2.

    Changes:
        - Add job ownership columns (existing rows keep NULL owners and are
          treated as orphaned by restart recovery)
    """
    logger.info("Migrating schema from v1 to v2")

    cursor = await db.execute("PRAGMA table_info(jobs)")
    column_names = [col[1] for col in await cursor.fetchall()]

    for name, sql_type in _OWNERSHIP_COLUMNS:
        if name not in column_names:
            await db.execute(f"ALTER TABLE jobs ADD COLUMN {name} {sql_type}")
            logger.info(f"Added {name} column to jobs table")


async def init_db(db_path: str) -> None:
    """
    Initialize database schema with WAL mode and optimal settings.

    Args:
        db_path: Path to SQLite database file

    Settings:
        - WAL mode: Concurrent reads + writes
        - synchronous=NORMAL: Good durability/performance balance
        - busy_timeout=5000ms: Retry on SQLITE_BUSY
    """
    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA synchronous=NORMAL")
        await db.execute("PRAGMA busy_timeout=5000")

        await db.execute(JOBS_TABLE_SQL)
        await db.execute(PROJECTS_TABLE_SQL)
        await db.execute(ARTIFACTS_TABLE_SQL)
        await db.execute(JOBS_INDEX_SQL)
        await db.execute(ARTIFACTS_INDEX_SQL)

        current_version = await _get_schema_version(db)
        if current_version < 1:
            await _set_schema_version(db, SCHEMA_VERSION)
            logger.info(f"New database initialized at v{SCHEMA_VERSION}")
        elif current_version == 1:
            await _migrate_v1_to_v2(db)
            await _set_schema_version(db, 2)
            logger.info("Migration to v2 complete")
        elif current_version > SCHEMA_VERSION:
            logger.warning(
                f"Database schema v{current_version} is newer than supported v{SCHEMA_VERSION}"
            )

        await db.commit()

        logger.info(f"Initialized database at {db_path} (schema v{SCHEMA_VERSION})")
