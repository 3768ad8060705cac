"""Process-wide counters for the admission queue."""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("analysis_queue.jobs.metrics")


@dataclass
class QueueMetrics:
    """Cumulative job outcomes.

    Counters only ever increase. Each job is counted once when it resolves:
    in ``total_processed`` if the gateway produced its result, in
    ``total_errors`` if a fallback was served. Retries are tracked
    separately and never touch either counter.
    """

    total_submitted: int = 0
    total_processed: int = 0
    total_errors: int = 0
    total_retries: int = 0
    last_error: Optional[str] = None

    def record_submission(self) -> None:
        self.total_submitted += 1

    def record_success(self) -> None:
        self.total_processed += 1
        logger.debug(f"[Metrics] Job completed. Total processed: {self.total_processed}")

    def record_failure(self, message: str) -> None:
        self.total_errors += 1
        self.last_error = message

    def record_retry(self) -> None:
        self.total_retries += 1

    @property
    def total_resolved(self) -> int:
        """Jobs that have reached a terminal result."""
        return self.total_processed + self.total_errors

    @property
    def in_flight(self) -> int:
        """Submitted jobs that have not resolved yet."""
        return self.total_submitted - self.total_resolved
