"""Exception taxonomy for the admission queue.

Every operational failure the core can observe is expressed as a subclass of
:class:`AnalysisQueueError`. The admission controller absorbs all of them and
turns terminal failures into fallback results; only :class:`QueueClosedError`
escapes to callers of the administrative operations.
"""

from typing import Optional

RATE_LIMIT_STATUS = 429


class AnalysisQueueError(Exception):
    """Base class for all errors raised by the queue core."""


class RateLimitedError(AnalysisQueueError):
    """The scoring API signalled throttling (HTTP 429 or equivalent)."""

    def __init__(
        self,
        message: str = "Rate limited by scoring API",
        status: int = RATE_LIMIT_STATUS,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class QueueSaturatedError(RateLimitedError):
    """The rate limiter dropped a waiting call under its leak strategy."""

    def __init__(self, message: str = "Rate limiter saturated"):
        super().__init__(message)


class JobTimeoutError(AnalysisQueueError):
    """A running job exceeded its execution ceiling."""

    def __init__(self, job_id: str, timeout: float):
        super().__init__(f"Job {job_id} timed out after {timeout:g}s")
        self.job_id = job_id
        self.timeout = timeout


class GatewayError(AnalysisQueueError):
    """Any non-throttling failure from the scoring gateway."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class MalformedResponseError(GatewayError):
    """The model replied, but not with a parseable scoring result."""


class JobClearedError(AnalysisQueueError):
    """The job was dropped from the queue before it started."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} was cleared from the queue")
        self.job_id = job_id


class QueueClosedError(AnalysisQueueError):
    """An operation was attempted on a queue that has been closed."""


def _status_of(exc: BaseException) -> Optional[int]:
    """Read an HTTP-style status from an arbitrary exception."""
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_gateway_error(exc: Exception) -> AnalysisQueueError:
    """Map an exception raised by a scoring gateway into the taxonomy.

    Args:
        exc: The exception raised by the gateway call.

    Returns:
        ``exc`` itself if it is already a taxonomy error, a
        :class:`RateLimitedError` for 429-class failures, otherwise a
        :class:`GatewayError` wrapping the original message.
    """
    if isinstance(exc, AnalysisQueueError):
        return exc

    status = _status_of(exc)
    message = str(exc) or exc.__class__.__name__
    if status == RATE_LIMIT_STATUS:
        retry_after = None
        response = getattr(exc, "response", None)
        headers = getattr(response, "headers", None) or {}
        try:
            raw = headers.get("retry-after")
            retry_after = float(raw) if raw is not None else None
        except (TypeError, ValueError):
            retry_after = None
        return RateLimitedError(message, status=status, retry_after=retry_after)

    return GatewayError(message, status=status)
