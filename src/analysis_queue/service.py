"""Composition root wiring the queue, limiter, controller and reporter.

One :class:`AnalysisService` is created per process and handed to whatever
serves requests (HTTP layer, CLI). It owns all scheduling state; nothing is
kept in module globals.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from analysis_queue.config.models import AnalysisQueueConfig
from analysis_queue.jobs.metrics import QueueMetrics
from analysis_queue.jobs.queue import JobQueue
from analysis_queue.limiter.limiter import RateLimiter
from analysis_queue.llm.factory import create_llm_provider
from analysis_queue.llm.protocol import LLMProvider
from analysis_queue.models.results import AnalysisResult
from analysis_queue.models.status import StatusSnapshot, WaitEstimate
from analysis_queue.models.submission import AnalysisRequest
from analysis_queue.orchestration.admission import AdmissionController
from analysis_queue.orchestration.status import StatusReporter
from analysis_queue.scoring.fallback import FallbackProducer
from analysis_queue.scoring.gateway import LLMScoringGateway, ScoringGateway

logger = logging.getLogger("analysis_queue.service")


class AnalysisService:
    """Process-wide scoring queue exposed to the request layer."""

    def __init__(
        self,
        gateway: ScoringGateway,
        config: Optional[AnalysisQueueConfig] = None,
        fallback: Optional[FallbackProducer] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the service.

        Args:
            gateway: Scoring gateway performing the real analysis.
            config: Queue, limiter and retry configuration.
            fallback: Producer of fallback results (created if not provided).
            sleep: Coroutine used for retry backoff delays.
        """
        self._config = config or AnalysisQueueConfig()
        self._gateway = gateway
        self._metrics = QueueMetrics()
        self._queue = JobQueue.from_config(self._config.queue)
        self._limiter = RateLimiter.from_config(self._config.limiter)
        self._controller: AdmissionController[AnalysisRequest, AnalysisResult] = AdmissionController(
            queue=self._queue,
            limiter=self._limiter,
            score=gateway.score,
            fallback=(fallback or FallbackProducer()).produce,
            retry=self._config.retry,
            metrics=self._metrics,
            sleep=sleep,
        )
        self._reporter = StatusReporter(self._queue, self._limiter, self._metrics)

        logger.info(
            f"Analysis queue ready (profile={self._config.profile}, "
            f"concurrency={self._queue.concurrency}, interval={self._queue.interval:g}s, "
            f"reservoir={self._limiter.reservoir.capacity})"
        )

    @classmethod
    def from_config(
        cls,
        config: AnalysisQueueConfig,
        provider: Optional[LLMProvider] = None,
    ) -> "AnalysisService":
        """Create a service scoring with an LLM provider.

        Args:
            config: Full configuration.
            provider: LLM provider (created from ``config.llm`` if not provided).

        Returns:
            Configured AnalysisService.
        """
        provider = provider or create_llm_provider(config.llm)
        return cls(gateway=LLMScoringGateway(provider, config.llm), config=config)

    @property
    def config(self) -> AnalysisQueueConfig:
        return self._config

    @property
    def queue(self) -> JobQueue:
        return self._queue

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def metrics(self) -> QueueMetrics:
        return self._metrics

    async def submit_job(self, payload: AnalysisRequest, priority: int = 0) -> AnalysisResult:
        """Score a submission; never raises for downstream failures."""
        return await self._controller.submit(payload, priority=priority)

    def get_queue_status(self) -> StatusSnapshot:
        return self._reporter.get_status()

    def get_estimated_wait_time(self) -> WaitEstimate:
        return self._reporter.get_estimated_wait_time()

    def pause_queue(self) -> None:
        self._queue.pause()

    def resume_queue(self) -> None:
        self._queue.resume()

    def clear_queue(self) -> int:
        """Drop queued jobs; their submitters receive a "cleared" fallback."""
        return self._queue.clear()

    async def wait_idle(self) -> None:
        """Wait until nothing is queued or running."""
        await self._queue.on_idle()

    def close(self) -> None:
        """Refuse further work and release queued jobs with fallbacks."""
        self._queue.close()
        self._limiter.close()
