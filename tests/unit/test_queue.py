"""Tests for the priority job queue."""

import asyncio

import pytest

from analysis_queue.config.models import QueueConfig
from analysis_queue.errors import JobClearedError, JobTimeoutError, QueueClosedError
from analysis_queue.jobs import JobQueue, QueueMetrics
from analysis_queue.models import QueueStatus


def recorder(order: list, name: str):
    async def job():
        order.append(name)
        return name

    return job


class TestJobQueueOrdering:
    """Tests for start order."""

    @pytest.mark.asyncio
    async def test_higher_priority_starts_first(self):
        """Test that higher priorities jump ahead of earlier submissions."""
        queue = JobQueue(concurrency=1, interval=0.0)
        order = []

        queue.pause()
        futures = [
            queue.add(recorder(order, "low"), priority=0),
            queue.add(recorder(order, "high"), priority=5),
            queue.add(recorder(order, "mid"), priority=2),
        ]
        queue.resume()
        await asyncio.gather(*futures)

        assert order == ["high", "mid", "low"]

    @pytest.mark.asyncio
    async def test_equal_priority_is_fifo(self):
        """Test that equal priorities start in submission order."""
        queue = JobQueue(concurrency=1, interval=0.0)
        order = []

        queue.pause()
        futures = [queue.add(recorder(order, f"job-{i}")) for i in range(5)]
        queue.resume()
        await asyncio.gather(*futures)

        assert order == [f"job-{i}" for i in range(5)]


class TestJobQueueLimits:
    """Tests for concurrency and spacing."""

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeded(self):
        """Test that pending never exceeds the concurrency cap."""
        queue = JobQueue(concurrency=3, interval=0.0)
        peak = 0

        async def work():
            nonlocal peak
            peak = max(peak, queue.pending)
            await asyncio.sleep(0.01)

        await asyncio.gather(*(queue.run(work) for _ in range(10)))

        assert peak == 3
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_interval_between_starts(self):
        """Test that a burst of jobs is spread by the start interval."""
        queue = JobQueue(concurrency=1, interval=0.05)
        loop = asyncio.get_running_loop()
        starts = []

        async def work():
            starts.append(loop.time())

        await asyncio.gather(*(queue.run(work) for _ in range(10)))

        assert len(starts) == 10
        assert starts[-1] - starts[0] >= 9 * 0.05 * 0.95

    @pytest.mark.asyncio
    async def test_size_counts_job_immediately(self):
        """Test that a job is visible in size as soon as add returns."""
        queue = JobQueue(concurrency=1, interval=0.0)
        queue.pause()

        future = queue.add(recorder([], "a"))
        assert queue.size == 1
        assert queue.pending == 0

        queue.resume()
        await future
        assert queue.size == 0

    @pytest.mark.asyncio
    async def test_status_snapshot(self):
        """Test that status reports depth, running jobs and state together."""
        queue = JobQueue(concurrency=1, interval=0.0)
        assert queue.status() == QueueStatus(queue_size=0, pending=0, is_paused=False, is_idle=True)

        gate = asyncio.Event()
        running = queue.add(gate.wait)
        await asyncio.sleep(0)
        queue.pause()
        waiting = queue.add(recorder([], "b"))

        assert queue.status() == QueueStatus(queue_size=1, pending=1, is_paused=True, is_idle=False)

        queue.resume()
        gate.set()
        await asyncio.gather(running, waiting)
        assert queue.status().is_idle


class TestJobQueuePauseResume:
    """Tests for pause and resume."""

    @pytest.mark.asyncio
    async def test_pause_lets_running_job_finish(self):
        """Test that pausing stops dequeuing without touching the running job."""
        queue = JobQueue(concurrency=1, interval=0.0)
        gate = asyncio.Event()
        order = []

        async def first():
            await gate.wait()
            order.append("first")

        running = queue.add(first)
        queued = [queue.add(recorder(order, f"job-{i}")) for i in range(3)]
        await asyncio.sleep(0)
        assert queue.pending == 1

        queue.pause()
        gate.set()
        await running
        await asyncio.sleep(0.01)

        assert order == ["first"]
        assert queue.size == 3
        assert queue.pending == 0
        assert queue.is_paused

        queue.resume()
        await asyncio.gather(*queued)
        assert order == ["first", "job-0", "job-1", "job-2"]

    @pytest.mark.asyncio
    async def test_pause_and_resume_are_idempotent(self):
        """Test that repeated pause and resume calls are harmless."""
        queue = JobQueue()
        queue.pause()
        queue.pause()
        assert queue.is_paused
        queue.resume()
        queue.resume()
        assert not queue.is_paused


class TestJobQueueFailures:
    """Tests for job failures, timeouts and clearing."""

    @pytest.mark.asyncio
    async def test_job_error_propagates_to_caller(self):
        """Test that a job's exception is delivered through its future."""
        queue = JobQueue(interval=0.0)

        async def boom():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await queue.run(boom)
        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_synchronous_setup_error_is_caught(self):
        """Test that a callable failing before returning a coroutine settles its future."""
        queue = JobQueue(interval=0.0)

        def broken():
            raise RuntimeError("setup failed")

        with pytest.raises(RuntimeError, match="setup failed"):
            await queue.run(broken)
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_timeout_cancels_job(self):
        """Test that an overlong job is cancelled and fails with JobTimeoutError."""
        queue = JobQueue(interval=0.0, timeout=0.05)
        cancelled = asyncio.Event()

        async def hang():
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(JobTimeoutError) as exc_info:
            await queue.run(hang, label="job_hang")

        assert exc_info.value.job_id == "job_hang"
        assert cancelled.is_set()
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_clear_fails_queued_jobs(self):
        """Test that clearing resolves every queued future with JobClearedError."""
        queue = JobQueue(interval=0.0)
        queue.pause()
        futures = [queue.add(recorder([], f"job-{i}")) for i in range(3)]

        assert queue.clear() == 3
        assert queue.size == 0
        assert queue.is_idle

        for future in futures:
            with pytest.raises(JobClearedError):
                await future

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_queue(self):
        """Test that cancelling a queued future removes its entry."""
        queue = JobQueue(interval=0.0)
        queue.pause()
        keep = queue.add(recorder([], "keep"))
        drop = queue.add(recorder([], "drop"))

        drop.cancel()
        await asyncio.sleep(0)

        assert queue.size == 1
        queue.resume()
        assert await keep == "keep"

    @pytest.mark.asyncio
    async def test_closed_queue_refuses_work(self):
        """Test that a closed queue drops queued jobs and rejects operations."""
        queue = JobQueue(interval=0.0)
        queue.pause()
        queued = queue.add(recorder([], "a"))

        assert queue.close() == 1
        with pytest.raises(JobClearedError):
            await queued
        with pytest.raises(QueueClosedError):
            queue.add(recorder([], "b"))
        with pytest.raises(QueueClosedError):
            queue.pause()
        with pytest.raises(QueueClosedError):
            queue.clear()
        assert queue.is_closed


class TestJobQueueIdle:
    """Tests for idle tracking."""

    @pytest.mark.asyncio
    async def test_on_idle_waits_for_all_jobs(self):
        """Test that on_idle returns only after queued and running jobs finish."""
        queue = JobQueue(concurrency=2, interval=0.0)
        done = []

        async def work(i):
            await asyncio.sleep(0.01)
            done.append(i)

        for i in range(4):
            queue.add(lambda i=i: work(i))
        assert not queue.is_idle

        await asyncio.wait_for(queue.on_idle(), timeout=1.0)
        assert sorted(done) == [0, 1, 2, 3]
        assert queue.is_idle

    def test_from_config(self):
        """Test building a queue from configuration."""
        queue = JobQueue.from_config(QueueConfig(concurrency=6, interval_seconds=1.0, job_timeout_seconds=30.0))
        assert queue.concurrency == 6
        assert queue.interval == 1.0
        assert queue.timeout == 30.0


class TestQueueMetrics:
    """Tests for QueueMetrics."""

    def test_counters(self):
        """Test that outcomes are counted once and retries separately."""
        metrics = QueueMetrics()
        for _ in range(3):
            metrics.record_submission()
        metrics.record_success()
        metrics.record_retry()
        metrics.record_retry()
        metrics.record_failure("Rate limited")

        assert metrics.total_processed == 1
        assert metrics.total_errors == 1
        assert metrics.total_retries == 2
        assert metrics.total_resolved == 2
        assert metrics.in_flight == 1
        assert metrics.last_error == "Rate limited"
