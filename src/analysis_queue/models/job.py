"""Job data model."""

import uuid
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from analysis_queue.models.enums import JobState

PayloadT = TypeVar("PayloadT")


def generate_job_id() -> str:
    """Generate an opaque, unique job identifier."""
    return f"job_{uuid.uuid4().hex[:12]}"


class Job(BaseModel, Generic[PayloadT]):
    """A unit of submitted work, tracked from submission to resolution.

    The payload is opaque to the queue; it is handed unchanged to the
    scoring gateway on every attempt.
    """

    job_id: str = Field(default_factory=generate_job_id)
    payload: PayloadT
    priority: int = 0

    # Retry budget
    max_retries: int = Field(default=3, ge=0)
    retries_remaining: int = Field(default=3, ge=0)
    attempts: int = 0
    timeouts: int = 0

    state: JobState = JobState.QUEUED

    # Timestamps
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    last_error: Optional[str] = None

    def consume_retry(self) -> int:
        """Spend one unit of the retry budget.

        Returns:
            The number of retries left afterwards.
        """
        if self.retries_remaining <= 0:
            raise ValueError(f"Job {self.job_id} has no retries remaining")
        self.retries_remaining -= 1
        return self.retries_remaining

    @property
    def is_terminal(self) -> bool:
        """Whether the job has resolved."""
        return self.state.is_terminal

    @property
    def duration_seconds(self) -> Optional[float]:
        """Seconds from first start to resolution (or now)."""
        if self.started_at is None:
            return None
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()
