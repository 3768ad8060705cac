"""Status snapshot models returned by the status reporter."""

from typing import Optional

from pydantic import BaseModel


class QueueStatus(BaseModel):
    """Job queue state."""

    queue_size: int
    pending: int
    is_paused: bool
    is_idle: bool


class ReservoirStatus(BaseModel):
    """Rate limiter state."""

    capacity: int
    current: int
    queued: int
    running: int


class StatusSnapshot(BaseModel):
    """Point-in-time view of queue health. JSON-serializable."""

    queue_size: int
    pending: int
    is_paused: bool
    is_idle: bool
    total_submitted: int
    total_processed: int
    total_errors: int
    total_retries: int
    last_error: Optional[str] = None
    reservoir: ReservoirStatus
    estimated_wait_seconds: int = 0


class WaitEstimate(BaseModel):
    """Projected wait for a newly submitted job.

    This is an estimate derived from queue depth and configured spacing, not a
    guarantee: retries, refill pauses and gateway latency are not modelled.
    """

    seconds: int
    minutes: int
    human_readable: str
