"""Read-only status reporting for the admission queue."""

import math

from analysis_queue.jobs.metrics import QueueMetrics
from analysis_queue.jobs.queue import JobQueue
from analysis_queue.limiter.limiter import RateLimiter
from analysis_queue.models.status import StatusSnapshot, WaitEstimate


class StatusReporter:
    """Builds status snapshots from live queue, limiter and metrics state.

    Every read is constant time: counters are kept up to date by the queue
    and the admission controller, never recomputed from job history.
    """

    def __init__(self, queue: JobQueue, limiter: RateLimiter, metrics: QueueMetrics):
        self._queue = queue
        self._limiter = limiter
        self._metrics = metrics

    def get_status(self) -> StatusSnapshot:
        """Snapshot of queue, limiter, cumulative counters and projected wait."""
        queue = self._queue.status()
        return StatusSnapshot(
            queue_size=queue.queue_size,
            pending=queue.pending,
            is_paused=queue.is_paused,
            is_idle=queue.is_idle,
            total_submitted=self._metrics.total_submitted,
            total_processed=self._metrics.total_processed,
            total_errors=self._metrics.total_errors,
            total_retries=self._metrics.total_retries,
            last_error=self._metrics.last_error,
            reservoir=self._limiter.status(),
            estimated_wait_seconds=self.get_estimated_wait_time().seconds,
        )

    @property
    def effective_concurrency(self) -> int:
        """The tighter of the queue and limiter concurrency caps."""
        return min(self._queue.concurrency, self._limiter.max_concurrent)

    @property
    def effective_spacing(self) -> float:
        """The longer of the queue and limiter start spacings, in seconds."""
        return max(self._queue.interval, self._limiter.min_spacing)

    def get_estimated_wait_time(self) -> WaitEstimate:
        """Estimate how long a job submitted now would wait.

        Computed as ``(queue_size + pending) / max_concurrent * min_spacing``.
        This is an estimate, not a guarantee: it ignores reservoir refill
        pauses, retries and gateway latency.
        """
        backlog = self._queue.size + self._queue.pending
        seconds = math.ceil(backlog / self.effective_concurrency * self.effective_spacing)
        minutes = math.ceil(seconds / 60)
        human_readable = f"{minutes} minutes" if seconds > 60 else f"{seconds} seconds"
        return WaitEstimate(seconds=seconds, minutes=minutes, human_readable=human_readable)
