# ideaforge/background/notifier.py
"""
Progress subscriptions.

Observers never receive callbacks from the runner directly. A subscription
polls the progress store and forwards changed snapshots, so any caller
holding a job id can attach at any time, including after the job ended.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from ideaforge.models.jobs import GenerationJob
from ideaforge.models.store import ProgressStore

logger = logging.getLogger(__name__)

OnUpdate = Callable[[GenerationJob], Awaitable[None] | None]


def _snapshot_key(job: GenerationJob) -> tuple:
    return (job.status, job.progress_percent, job.progress_message, job.last_error)


class Subscription:
    """
    Handle for one observer of one job.

    Delivers a snapshot whenever the stored record changes; the terminal
    snapshot is delivered exactly once and then polling stops.
    """

    def __init__(
        self,
        job_id: str,
        on_update: OnUpdate,
        store: ProgressStore,
        poll_interval: float,
    ) -> None:
        self.job_id = job_id
        self._on_update = on_update
        self._store = store
        self._poll_interval = poll_interval
        self._task: asyncio.Task | None = None
        self._closed = False
        self._last_key: tuple | None = None
        self._last_percent = -1

    @property
    def active(self) -> bool:
        """True while the subscription still polls for updates."""
        return not self._closed and self._task is not None and not self._task.done()

    def unsubscribe(self) -> None:
        """Stop delivery. Safe to call repeatedly and after the job finished."""
        if self._closed:
            return
        self._closed = True

        # Called from inside a callback: the poll loop sees _closed and exits
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
        logger.debug(f"Unsubscribed from job {self.job_id}")

    async def wait(self) -> None:
        """Wait until polling stops (terminal snapshot delivered or unsubscribed)."""
        if self._task is None:
            return
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            # Poller cancelled by unsubscribe() is a normal end; our own cancellation is not
            if not self._task.cancelled():
                raise

    def _start(self) -> None:
        self._task = asyncio.create_task(self._poll(), name=f"subscription-{self.job_id}")

    async def _deliver(self, snapshot: GenerationJob) -> None:
        """Forward a snapshot if it is new and not older than the last one delivered."""
        if self._closed:
            return

        key = _snapshot_key(snapshot)
        if key == self._last_key:
            return
        if snapshot.progress_percent < self._last_percent:
            logger.debug(
                f"Skipping stale snapshot for job {self.job_id} "
                f"({snapshot.progress_percent}% < {self._last_percent}%)"
            )
            return

        self._last_key = key
        self._last_percent = snapshot.progress_percent

        try:
            result = self._on_update(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Subscriber callback for job {self.job_id} raised")

    async def _poll(self) -> None:
        """Poll the store until the job is terminal or the subscriber leaves."""
        try:
            while not self._closed:
                await asyncio.sleep(self._poll_interval)
                if self._closed:
                    break

                snapshot = await self._store.read(self.job_id)
                if snapshot is None:
                    logger.warning(f"Job {self.job_id} disappeared from the progress store")
                    break

                await self._deliver(snapshot)
                if snapshot.is_terminal:
                    break

        except asyncio.CancelledError:
            raise

        except Exception:
            logger.exception(f"Polling job {self.job_id} failed")

        finally:
            self._closed = True


class JobNotifier:
    """
    Creates polling subscriptions against a progress store.

    Polling on a fixed interval is the delivery mechanism; there is no
    push channel from the runner.
    """

    def __init__(self, store: ProgressStore, poll_interval: float = 2.0) -> None:
        """
        Args:
            store: Progress store to read snapshots from
            poll_interval: Seconds between polls
        """
        self._store = store
        self._poll_interval = poll_interval
        self._subscriptions: set[Subscription] = set()

    async def subscribe(self, job_id: str, on_update: OnUpdate) -> Subscription:
        """
        Register a callback for a job's progress.

        The current snapshot is delivered before this returns. If the job is
        already terminal that is the only delivery.

        Args:
            job_id: Job to observe
            on_update: Sync or async callable receiving GenerationJob snapshots

        Returns:
            Subscription handle

        Raises:
            ValueError: If the job doesn't exist
        """
        snapshot = await self._store.read(job_id)
        if snapshot is None:
            raise ValueError(f"Job {job_id} not found")

        subscription = Subscription(job_id, on_update, self._store, self._poll_interval)
        await subscription._deliver(snapshot)

        if snapshot.is_terminal:
            subscription._closed = True
            return subscription

        if not subscription._closed:
            subscription._start()
            self._subscriptions.add(subscription)
            subscription._task.add_done_callback(
                lambda _t, s=subscription: self._subscriptions.discard(s)
            )

        return subscription

    def close_all(self) -> None:
        """Unsubscribe every live subscription (shutdown)."""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
        self._subscriptions.clear()
