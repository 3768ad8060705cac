"""Enumerations for the analysis queue."""

from enum import Enum


class JobState(str, Enum):
    """Lifecycle states of a submitted job."""

    QUEUED = "queued"
    RUNNING = "running"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED_FALLBACK = "failed_fallback"

    @property
    def is_terminal(self) -> bool:
        """Whether the job has been resolved."""
        return self in (JobState.COMPLETED, JobState.FAILED_FALLBACK)


class ResultSource(str, Enum):
    """Which path produced a result."""

    GATEWAY = "gateway"
    FALLBACK = "fallback"


class FallbackReason(str, Enum):
    """Why a fallback result was served instead of a real score."""

    RATE_LIMITED = "rate_limited"
    SATURATED = "saturated"
    TIMEOUT = "timeout"
    GATEWAY_ERROR = "gateway_error"
    CLEARED = "cleared"
    CLOSED = "closed"
