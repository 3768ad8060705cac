"""Pytest configuration and fixtures."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from analysis_queue.config.models import (
    AnalysisQueueConfig,
    LimiterConfig,
    QueueConfig,
    RetryConfig,
)
from analysis_queue.models.results import (
    ComplianceFeedback,
    ScoringResult,
    SectionFeedback,
    WritingQuality,
)
from analysis_queue.models.submission import AnalysisRequest


class RateLimitResponse(Exception):
    """Exception shaped like an HTTP 429 from an API client."""

    def __init__(self, message: str = "429 Too Many Requests"):
        super().__init__(message)
        self.status = 429


class ServerErrorResponse(Exception):
    """Exception shaped like an HTTP 500 from an API client."""

    def __init__(self, message: str = "500 Internal Server Error"):
        super().__init__(message)
        self.status_code = 500


def make_request(session_code: str = "session-001") -> AnalysisRequest:
    """Create a submission payload."""
    return AnalysisRequest(
        session_code=session_code,
        executive_summary="The regulation requires enhanced compliance reporting.",
        impact_analysis="Stakeholders face significant implementation costs.",
        document_text="Regulatory text " * 200,
    )


def make_result(request: AnalysisRequest) -> ScoringResult:
    """Create a gateway-style result for a submission."""
    return ScoringResult(
        session_id=request.session_code,
        overall_score=82,
        executive_summary=SectionFeedback(score=80),
        impact_analysis=SectionFeedback(score=84),
        regulatory_compliance=ComplianceFeedback(score=78),
        writing_quality=WritingQuality(score=81, clarity=80, conciseness=79, professionalism=85),
        model="test-model",
    )


class ControlledGateway:
    """Gateway whose calls block until ``release`` is set."""

    def __init__(self):
        self.release = asyncio.Event()
        self.started: list[str] = []

    async def score(self, payload: AnalysisRequest) -> ScoringResult:
        self.started.append(payload.session_code)
        await self.release.wait()
        return make_result(payload)


class InstantGateway:
    """Gateway that succeeds immediately and records start times."""

    def __init__(self):
        self.start_times: list[float] = []

    async def score(self, payload: AnalysisRequest) -> ScoringResult:
        self.start_times.append(asyncio.get_running_loop().time())
        return make_result(payload)


@pytest.fixture
def sample_request() -> AnalysisRequest:
    """A single submission payload."""
    return make_request()


@pytest.fixture
def fast_config() -> AnalysisQueueConfig:
    """Configuration with no spacing and a generous reservoir."""
    return AnalysisQueueConfig(
        limiter=LimiterConfig(
            max_concurrent=1,
            min_spacing_seconds=0.0,
            reservoir_capacity=100,
            refill_amount=100,
            refill_interval_seconds=60.0,
        ),
        queue=QueueConfig(concurrency=1, interval_seconds=0.0, job_timeout_seconds=5.0),
        retry=RetryConfig(max_retries=3, backoff_step_seconds=30.0),
    )


@pytest.fixture
def recording_sleep() -> AsyncMock:
    """Backoff sleep that returns immediately and records requested delays."""
    return AsyncMock(return_value=None)
