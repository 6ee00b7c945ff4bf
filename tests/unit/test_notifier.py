# tests/unit/test_notifier.py
"""
Unit tests for JobNotifier subscriptions.

Polling runs at 10ms so tests finish quickly.
"""

import asyncio

import pytest

from ideaforge.models.jobs import GenerationJob, InMemoryProgressStore, JobStatus
from ideaforge.background.notifier import JobNotifier

POLL = 0.01


async def _running_job(store: InMemoryProgressStore, percent: int = 0) -> GenerationJob:
    job = GenerationJob(
        job_id="abc123def456",
        owner_entity_id="proj00000001",
        status=JobStatus.RUNNING,
        progress_percent=percent,
        progress_message="Generating tech stack...",
    )
    await store.write(job)
    return job


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(POLL)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_current_snapshot_delivered_before_subscribe_returns(progress_store):
    await _running_job(progress_store, percent=40)
    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[GenerationJob] = []

    subscription = await notifier.subscribe("abc123def456", received.append)

    assert len(received) == 1
    assert received[0].progress_percent == 40
    assert received[0].status == JobStatus.RUNNING
    subscription.unsubscribe()


@pytest.mark.asyncio
async def test_unknown_job_raises(progress_store):
    notifier = JobNotifier(progress_store, poll_interval=POLL)

    with pytest.raises(ValueError, match="not found"):
        await notifier.subscribe("missing00000", lambda job: None)


@pytest.mark.asyncio
async def test_subscribing_to_terminal_job_delivers_exactly_once(progress_store):
    job = await _running_job(progress_store)
    job.status = JobStatus.COMPLETED
    job.progress_percent = 100
    await progress_store.write(job)

    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[GenerationJob] = []
    subscription = await notifier.subscribe(job.job_id, received.append)
    await asyncio.sleep(POLL * 5)
    await subscription.wait()

    assert [j.status for j in received] == [JobStatus.COMPLETED]
    assert not subscription.active


@pytest.mark.asyncio
async def test_changes_delivered_in_order_until_terminal(progress_store):
    """Test updates arrive in order and the terminal snapshot arrives exactly once."""
    job = await _running_job(progress_store)
    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[GenerationJob] = []
    subscription = await notifier.subscribe(job.job_id, received.append)

    job.progress_percent = 50
    job.progress_message = "Tech stack ready"
    await progress_store.write(job)
    await _wait_for(lambda: received[-1].progress_percent == 50)

    job.status = JobStatus.COMPLETED
    job.progress_percent = 100
    job.progress_message = "Generation complete"
    await progress_store.write(job)
    await asyncio.wait_for(subscription.wait(), 1.0)
    await asyncio.sleep(POLL * 5)

    percents = [j.progress_percent for j in received]
    assert percents == [0, 50, 100]
    assert sum(1 for j in received if j.is_terminal) == 1
    assert not subscription.active


@pytest.mark.asyncio
async def test_unchanged_snapshots_not_redelivered(progress_store):
    await _running_job(progress_store, percent=20)
    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[GenerationJob] = []

    subscription = await notifier.subscribe("abc123def456", received.append)
    await asyncio.sleep(POLL * 10)

    assert len(received) == 1
    subscription.unsubscribe()


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent_and_stops_delivery(progress_store):
    job = await _running_job(progress_store)
    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[GenerationJob] = []
    subscription = await notifier.subscribe(job.job_id, received.append)

    subscription.unsubscribe()
    subscription.unsubscribe()
    await subscription.wait()

    job.progress_percent = 60
    await progress_store.write(job)
    await asyncio.sleep(POLL * 5)

    assert len(received) == 1
    assert not subscription.active


@pytest.mark.asyncio
async def test_unsubscribe_after_termination_is_safe(progress_store):
    job = await _running_job(progress_store)
    job.status = JobStatus.FAILED
    await progress_store.write(job)
    notifier = JobNotifier(progress_store, poll_interval=POLL)

    subscription = await notifier.subscribe(job.job_id, lambda j: None)
    subscription.unsubscribe()
    subscription.unsubscribe()


@pytest.mark.asyncio
async def test_async_callback_and_unsubscribe_from_inside_callback(progress_store):
    job = await _running_job(progress_store)
    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[int] = []
    holder = {}

    async def on_update(snapshot: GenerationJob) -> None:
        received.append(snapshot.progress_percent)
        if snapshot.progress_percent >= 30:
            holder["sub"].unsubscribe()

    holder["sub"] = await notifier.subscribe(job.job_id, on_update)

    job.progress_percent = 30
    await progress_store.write(job)
    await asyncio.wait_for(holder["sub"].wait(), 1.0)

    job.progress_percent = 80
    await progress_store.write(job)
    await asyncio.sleep(POLL * 5)

    assert received == [0, 30]


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_polling(progress_store):
    job = await _running_job(progress_store)
    notifier = JobNotifier(progress_store, poll_interval=POLL)
    received: list[GenerationJob] = []

    def on_update(snapshot: GenerationJob) -> None:
        received.append(snapshot)
        if len(received) == 1:
            raise RuntimeError("display closed")

    subscription = await notifier.subscribe(job.job_id, on_update)

    job.status = JobStatus.COMPLETED
    job.progress_percent = 100
    await progress_store.write(job)
    await asyncio.wait_for(subscription.wait(), 1.0)

    assert received[-1].status == JobStatus.COMPLETED


@pytest.mark.asyncio
async def test_close_all_stops_every_subscription(progress_store):
    await _running_job(progress_store)
    notifier = JobNotifier(progress_store, poll_interval=POLL)

    first = await notifier.subscribe("abc123def456", lambda j: None)
    second = await notifier.subscribe("abc123def456", lambda j: None)
    notifier.close_all()
    await first.wait()
    await second.wait()

    assert not first.active
    assert not second.active
