"""In-process job scheduling and metrics."""

from analysis_queue.jobs.metrics import QueueMetrics
from analysis_queue.jobs.queue import JobQueue

__all__ = [
    "JobQueue",
    "QueueMetrics",
]
