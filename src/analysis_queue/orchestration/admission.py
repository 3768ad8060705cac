"""Admission and retry control for scoring jobs.

Every submission runs through the job queue and the rate limiter. Throttled
attempts are retried with an incrementing backoff, re-entering the queue as
new entries (they do not keep their original position, so newer jobs of the
same priority can overtake them). Whatever happens, :meth:`submit` resolves
to a result: the gateway's score or a tagged fallback.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from analysis_queue.config.models import RetryConfig
from analysis_queue.errors import (
    AnalysisQueueError,
    JobClearedError,
    JobTimeoutError,
    QueueClosedError,
    QueueSaturatedError,
    RateLimitedError,
    classify_gateway_error,
)
from analysis_queue.jobs.metrics import QueueMetrics
from analysis_queue.jobs.queue import JobQueue
from analysis_queue.limiter.limiter import RateLimiter
from analysis_queue.models.enums import FallbackReason, JobState
from analysis_queue.models.job import Job

logger = logging.getLogger("analysis_queue.orchestration.admission")

PayloadT = TypeVar("PayloadT")
ResultT = TypeVar("ResultT")

ScoreFn = Callable[[PayloadT], Awaitable[ResultT]]
FallbackFn = Callable[[PayloadT, FallbackReason, Optional[str]], ResultT]


def fallback_reason(error: BaseException) -> FallbackReason:
    """Pick the fallback reason describing a terminal error."""
    if isinstance(error, QueueSaturatedError):
        return FallbackReason.SATURATED
    if isinstance(error, RateLimitedError):
        return FallbackReason.RATE_LIMITED
    if isinstance(error, JobTimeoutError):
        return FallbackReason.TIMEOUT
    if isinstance(error, JobClearedError):
        return FallbackReason.CLEARED
    if isinstance(error, QueueClosedError):
        return FallbackReason.CLOSED
    return FallbackReason.GATEWAY_ERROR


class AdmissionController(Generic[PayloadT, ResultT]):
    """Submits jobs, retries throttled attempts and guarantees a result."""

    def __init__(
        self,
        queue: JobQueue,
        limiter: RateLimiter,
        score: ScoreFn,
        fallback: FallbackFn,
        retry: Optional[RetryConfig] = None,
        metrics: Optional[QueueMetrics] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the admission controller.

        Args:
            queue: Job queue providing local admission control.
            limiter: Rate limiter guarding the scoring call.
            score: Coroutine function performing the scoring call.
            fallback: Builds a substitute result from (payload, reason, error).
            retry: Retry and backoff policy.
            metrics: Shared metrics to update (created if not provided).
            sleep: Coroutine used for backoff delays.
        """
        self._queue = queue
        self._limiter = limiter
        self._score = score
        self._fallback = fallback
        self._retry = retry or RetryConfig()
        self._metrics = metrics or QueueMetrics()
        self._sleep = sleep

    @property
    def metrics(self) -> QueueMetrics:
        return self._metrics

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry

    async def submit(self, payload: PayloadT, priority: int = 0) -> ResultT:
        """Submit a job and wait for its result.

        The job enters the queue before this coroutine first suspends.

        Args:
            payload: Data handed to the scoring call.
            priority: Higher values are scheduled first.

        Returns:
            The scoring result, or a fallback result if scoring failed.
        """
        job = Job(
            payload=payload,
            priority=priority,
            max_retries=self._retry.max_retries,
            retries_remaining=self._retry.max_retries,
        )
        self._metrics.record_submission()
        logger.info(f"[Queue] Adding job {job.job_id} to queue. Current size: {self._queue.size}")

        try:
            result = await self._run_with_retries(job)
        except Exception as e:
            return self._fall_back(job, e)

        job.state = JobState.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        self._metrics.record_success()
        logger.info(f"[Queue] Job {job.job_id} completed successfully after {job.attempts} attempt(s)")
        return result

    def _retrying(self, job: Job) -> AsyncRetrying:
        step = self._retry.backoff_step_seconds
        return AsyncRetrying(
            retry=retry_if_exception(lambda e: self._should_retry(job, e)),
            stop=stop_after_attempt(self._retry.max_retries + 1),
            wait=wait_incrementing(start=step, increment=step),
            before_sleep=lambda state: self._before_retry(job, state),
            sleep=self._sleep,
            reraise=True,
        )

    async def _run_with_retries(self, job: Job) -> ResultT:
        async for attempt in self._retrying(job):
            with attempt:
                result = await self._attempt(job)
        return result

    async def _attempt(self, job: Job) -> ResultT:
        """Queue one attempt of ``job`` and wait for it."""
        job.attempts += 1
        job.state = JobState.QUEUED
        priority = job.priority + self._retry.retry_priority_boost * (job.attempts - 1)

        try:
            return await self._queue.add(
                lambda: self._execute(job),
                priority=priority,
                label=job.job_id,
            )
        except JobTimeoutError:
            job.timeouts += 1
            raise

    async def _execute(self, job: Job) -> ResultT:
        """Body of one attempt; runs while holding a queue slot."""
        job.state = JobState.RUNNING
        if job.started_at is None:
            job.started_at = datetime.now(timezone.utc)
        logger.info(f"[Queue] Starting job {job.job_id} (attempt {job.attempts})")

        try:
            return await self._limiter.schedule(self._score, job.payload)
        except AnalysisQueueError:
            raise
        except Exception as e:
            raise classify_gateway_error(e) from e

    def _should_retry(self, job: Job, error: BaseException) -> bool:
        if job.retries_remaining <= 0:
            return False
        if isinstance(error, RateLimitedError):
            return True
        if isinstance(error, JobTimeoutError):
            return job.timeouts <= self._retry.retry_timeouts
        return False

    def _before_retry(self, job: Job, retry_state: RetryCallState) -> None:
        remaining = job.consume_retry()
        job.state = JobState.RETRYING
        self._metrics.record_retry()

        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"[Queue] {error}. Retrying job {job.job_id} in {delay:g}s "
            f"({remaining} retries left)"
        )

    def _fall_back(self, job: Job, error: Exception) -> ResultT:
        reason = fallback_reason(error)
        message = str(error) or error.__class__.__name__

        job.state = JobState.FAILED_FALLBACK
        job.last_error = message
        job.completed_at = datetime.now(timezone.utc)
        self._metrics.record_failure(message)

        logger.error(
            f"[Queue] Failed to process job {job.job_id} after {job.attempts} attempt(s): {message}"
        )
        logger.info(f"[Queue] Falling back to demo mode for job {job.job_id} ({reason.value})")
        return self._fallback(job.payload, reason, message)
