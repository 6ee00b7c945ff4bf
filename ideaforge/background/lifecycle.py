# ideaforge/background/lifecycle.py
"""
Service lifecycle management.

Coordinates startup (DB initialization + restart recovery + wiring) and shutdown.
"""

import asyncio
import logging

from ideaforge.background.notifier import JobNotifier
from ideaforge.background.service import GenerationService
from ideaforge.background.signals import setup_signal_handlers
from ideaforge.config.schema import IdeaForgeConfig
from ideaforge.llm.client import OllamaClient
from ideaforge.models.sqlite_store import SQLiteArtifactStore, SQLiteProgressStore
from ideaforge.pipeline.executor import StepExecutor
from ideaforge.pipeline.generator import Generator, LLMGenerator
from ideaforge.pipeline.runner import PipelineRunner

logger = logging.getLogger(__name__)


class ServiceLifecycle:
    """
    Service lifecycle coordinator.

    Manages:
        - Database initialization and restart recovery on startup
        - Wiring of stores, generator, executor, runner, notifier and service
        - Signal handler registration
        - Graceful shutdown
    """

    def __init__(
        self,
        db_path: str,
        config: IdeaForgeConfig | None = None,
        generator: Generator | None = None,
    ) -> None:
        """
        Initialize service lifecycle manager.

        Args:
            db_path: Path to SQLite database file
            config: IdeaForgeConfig (defaults apply if None)
            generator: Generation collaborator override (defaults to LLMGenerator)
        """
        self._config = config or IdeaForgeConfig()
        self._store = SQLiteProgressStore(
            db_path, stale_after=self._config.storage.stale_after
        )
        self._artifacts = SQLiteArtifactStore(db_path)

        self._llm_client: OllamaClient | None = None
        if generator is None:
            self._llm_client = OllamaClient(
                base_url=self._config.ollama.base_url,
                model=self._config.ollama.model,
                timeout=self._config.ollama.timeout,
                temperature=self._config.ollama.temperature,
                num_ctx=self._config.ollama.num_ctx,
            )
            generator = LLMGenerator(self._llm_client)

        pipeline_cfg = self._config.pipeline
        executor = StepExecutor(
            generator,
            self._artifacts,
            retry_wait=pipeline_cfg.retry_wait,
            step_timeout=pipeline_cfg.step_timeout,
        )
        self._stopped = False
        self._heartbeat_task: asyncio.Task | None = None
        self._service = GenerationService(
            self._store,
            PipelineRunner(self._store, executor),
            JobNotifier(self._store, poll_interval=pipeline_cfg.poll_interval),
        )
        logger.info(f"Created ServiceLifecycle with db_path={db_path}")

    @property
    def config(self) -> IdeaForgeConfig:
        return self._config

    @property
    def store(self) -> SQLiteProgressStore:
        """Get the progress store (for tools)."""
        return self._store

    @property
    def artifacts(self) -> SQLiteArtifactStore:
        """Get the artifact store (for tools)."""
        return self._artifacts

    @property
    def service(self) -> GenerationService:
        """Get the generation service (control surface)."""
        return self._service

    @property
    def llm_client(self) -> OllamaClient | None:
        """Get the LLM client (None when a custom generator was injected)."""
        return self._llm_client

    async def startup(
        self, install_signal_handlers: bool = True, recover: bool = True
    ) -> None:
        """
        Start the service lifecycle.

        Steps:
            1. Initialize database schema
            2. Run restart recovery (jobs of dead processes → failed, not resumed)
            3. Check LLM connectivity (warning only)
            4. Start the heartbeat for jobs this process runs
            5. Register signal handlers for graceful shutdown

        Args:
            install_signal_handlers: False when embedded in a host that owns signals
            recover: False to skip restart recovery entirely
        """
        logger.info("Starting service lifecycle...")

        recovered_ids = await self._store.initialize(recover=recover)
        await self._artifacts.initialize()

        for job_id in recovered_ids:
            job = await self._store.read(job_id)
            if job is not None:
                logger.warning(
                    f"Job {job.job_id} was cut short by a previous shutdown at {job.progress_percent}% "
                    f"({job.progress_message})"
                )

        if self._llm_client is not None and not await self._llm_client.health_check():
            logger.warning(
                f"LLM server at {self._config.ollama.base_url} is not reachable; "
                "generation steps will fail until it is"
            )

        self._heartbeat_task = asyncio.create_task(self._heartbeat(), name="job-heartbeat")

        if install_signal_handlers:
            setup_signal_handlers(self)

        logger.info("Service lifecycle started")

    async def shutdown(self) -> None:
        """
        Shut down the service lifecycle gracefully.

        Steps:
            1. Stop the heartbeat, runner tasks and subscriptions
            2. Close databases (WAL checkpoint)
        """
        if self._stopped:
            return
        self._stopped = True
        logger.info("Shutting down service lifecycle...")

        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            await asyncio.gather(self._heartbeat_task, return_exceptions=True)

        await self._service.shutdown()
        await self._store.close()
        await self._artifacts.close()

        logger.info("Service lifecycle shutdown complete")

    async def _heartbeat(self) -> None:
        """Keep this process's unfinished jobs from looking orphaned to other processes."""
        interval = self._config.storage.heartbeat_interval
        while True:
            await asyncio.sleep(interval)
            job_ids = self._service.running_job_ids
            try:
                await self._store.heartbeat(job_ids)
            except Exception as e:
                logger.warning(f"Heartbeat for {len(job_ids)} job(s) failed: {e}")
