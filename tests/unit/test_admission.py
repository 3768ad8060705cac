"""Tests for admission control, retries and fallbacks."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from analysis_queue.config.models import RetryConfig
from analysis_queue.errors import (
    GatewayError,
    JobClearedError,
    JobTimeoutError,
    QueueClosedError,
    QueueSaturatedError,
    RateLimitedError,
    classify_gateway_error,
)
from analysis_queue.jobs import JobQueue, QueueMetrics
from analysis_queue.limiter import RateLimiter, Reservoir
from analysis_queue.models.enums import FallbackReason, ResultSource
from analysis_queue.orchestration import AdmissionController, fallback_reason
from analysis_queue.scoring.fallback import FallbackProducer
from tests.conftest import RateLimitResponse, ServerErrorResponse, make_request, make_result


def make_controller(score, sleep, timeout=5.0, retry=None, limiter=None):
    queue = JobQueue(concurrency=1, interval=0.0, timeout=timeout)
    limiter = limiter or RateLimiter(Reservoir(capacity=100, refill_amount=100, refill_interval=60.0))
    metrics = QueueMetrics()
    controller = AdmissionController(
        queue=queue,
        limiter=limiter,
        score=score,
        fallback=FallbackProducer().produce,
        retry=retry or RetryConfig(),
        metrics=metrics,
        sleep=sleep,
    )
    return controller, queue, metrics


def delays(sleep: AsyncMock) -> list[float]:
    return [call.args[0] for call in sleep.await_args_list]


class TestClassifyGatewayError:
    """Tests for classify_gateway_error."""

    def test_status_429_is_rate_limited(self):
        """Test that a 429 status becomes RateLimitedError."""
        error = classify_gateway_error(RateLimitResponse())
        assert isinstance(error, RateLimitedError)
        assert error.status == 429

    def test_status_code_attribute(self):
        """Test that status_code is read as well as status."""
        error = classify_gateway_error(ServerErrorResponse())
        assert type(error) is GatewayError
        assert error.status == 500

    def test_retry_after_header(self):
        """Test that a Retry-After header is captured."""

        class Response:
            headers = {"retry-after": "12"}

        exc = RateLimitResponse()
        exc.response = Response()
        error = classify_gateway_error(exc)
        assert error.retry_after == 12.0

    def test_plain_exception_is_gateway_error(self):
        """Test that unknown errors are non-throttling gateway errors."""
        error = classify_gateway_error(ConnectionError("connection reset"))
        assert isinstance(error, GatewayError)
        assert error.status is None
        assert "connection reset" in str(error)

    def test_taxonomy_errors_pass_through(self):
        """Test that errors already in the taxonomy are returned unchanged."""
        original = QueueSaturatedError()
        assert classify_gateway_error(original) is original


class TestFallbackReason:
    """Tests for fallback_reason."""

    @pytest.mark.parametrize(
        "error,reason",
        [
            (RateLimitedError(), FallbackReason.RATE_LIMITED),
            (QueueSaturatedError(), FallbackReason.SATURATED),
            (JobTimeoutError("job_1", 1.0), FallbackReason.TIMEOUT),
            (JobClearedError("job_1"), FallbackReason.CLEARED),
            (QueueClosedError("closed"), FallbackReason.CLOSED),
            (GatewayError("bad gateway", status=502), FallbackReason.GATEWAY_ERROR),
            (ValueError("unexpected"), FallbackReason.GATEWAY_ERROR),
        ],
    )
    def test_mapping(self, error, reason):
        """Test that each terminal error maps to its fallback reason."""
        assert fallback_reason(error) == reason


class TestAdmissionController:
    """Tests for AdmissionController."""

    @pytest.mark.asyncio
    async def test_success(self, sample_request, recording_sleep):
        """Test that a healthy gateway result is returned as-is."""
        score = AsyncMock(side_effect=make_result)
        controller, queue, metrics = make_controller(score, recording_sleep)

        result = await controller.submit(sample_request)

        assert result.source == ResultSource.GATEWAY
        assert result.session_id == sample_request.session_code
        score.assert_awaited_once_with(sample_request)
        assert metrics.total_submitted == 1
        assert metrics.total_processed == 1
        assert metrics.total_errors == 0
        assert queue.size == 0
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_rate_limited_retries_with_incrementing_backoff(self, sample_request, recording_sleep):
        """Test that persistent throttling backs off 30, 60, 90s then falls back."""
        score = AsyncMock(side_effect=RateLimitResponse())
        controller, _, metrics = make_controller(score, recording_sleep)

        result = await controller.submit(sample_request)

        assert result.source == ResultSource.FALLBACK
        assert result.reason == FallbackReason.RATE_LIMITED
        assert score.await_count == 4
        assert delays(recording_sleep) == [30, 60, 90]
        assert metrics.total_retries == 3
        assert metrics.total_errors == 1
        assert metrics.total_processed == 0

    @pytest.mark.asyncio
    async def test_recovers_after_throttling(self, sample_request, recording_sleep):
        """Test that a success after one 429 counts as processed, not as an error."""
        score = AsyncMock(side_effect=[RateLimitResponse(), make_result(sample_request)])
        controller, _, metrics = make_controller(score, recording_sleep)

        result = await controller.submit(sample_request)

        assert result.source == ResultSource.GATEWAY
        assert delays(recording_sleep) == [30]
        assert metrics.total_processed == 1
        assert metrics.total_errors == 0
        assert metrics.total_retries == 1

    @pytest.mark.asyncio
    async def test_zero_retry_budget(self, sample_request, recording_sleep):
        """Test that max_retries=0 falls back after a single throttled attempt."""
        score = AsyncMock(side_effect=RateLimitResponse())
        controller, _, metrics = make_controller(score, recording_sleep, retry=RetryConfig(max_retries=0))

        result = await controller.submit(sample_request)

        assert result.reason == FallbackReason.RATE_LIMITED
        assert score.await_count == 1
        recording_sleep.assert_not_awaited()
        assert metrics.total_retries == 0

    @pytest.mark.asyncio
    async def test_gateway_error_falls_back_immediately(self, sample_request, recording_sleep):
        """Test that non-throttling failures are not retried."""
        score = AsyncMock(side_effect=ServerErrorResponse())
        controller, _, metrics = make_controller(score, recording_sleep)

        result = await controller.submit(sample_request)

        assert result.source == ResultSource.FALLBACK
        assert result.reason == FallbackReason.GATEWAY_ERROR
        assert "500" in result.error
        assert score.await_count == 1
        recording_sleep.assert_not_awaited()
        assert metrics.total_errors == 1
        assert metrics.last_error == result.error

    @pytest.mark.asyncio
    async def test_timeout_retried_once(self, sample_request, recording_sleep):
        """Test that a hanging gateway is timed out, retried once, then replaced by a fallback."""
        calls = 0

        async def hang(payload):
            nonlocal calls
            calls += 1
            await asyncio.Event().wait()

        controller, queue, metrics = make_controller(hang, recording_sleep, timeout=0.05)

        result = await asyncio.wait_for(controller.submit(sample_request), timeout=2.0)

        assert result.source == ResultSource.FALLBACK
        assert result.reason == FallbackReason.TIMEOUT
        assert calls == 2
        assert metrics.total_retries == 1
        assert metrics.total_errors == 1
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_timeout_not_retried_when_disabled(self, sample_request, recording_sleep):
        """Test that retry_timeouts=0 falls back on the first timeout."""
        async def hang(payload):
            await asyncio.Event().wait()

        score = AsyncMock(side_effect=hang)
        controller, _, _ = make_controller(
            score, recording_sleep, timeout=0.05, retry=RetryConfig(retry_timeouts=0)
        )

        result = await controller.submit(sample_request)

        assert result.reason == FallbackReason.TIMEOUT
        assert score.await_count == 1

    @pytest.mark.asyncio
    async def test_saturated_limiter_retries_then_falls_back(self, sample_request, recording_sleep):
        """Test that calls dropped by the limiter are treated as throttled."""
        limiter = RateLimiter(
            Reservoir(capacity=1, refill_amount=1, refill_interval=60.0, initial_tokens=0),
            high_water=0,
        )
        score = AsyncMock(side_effect=make_result)
        controller, _, metrics = make_controller(score, recording_sleep, limiter=limiter)

        result = await controller.submit(sample_request)

        assert result.reason == FallbackReason.SATURATED
        score.assert_not_awaited()
        assert metrics.total_retries == 3

    @pytest.mark.asyncio
    async def test_cleared_job_falls_back(self, recording_sleep):
        """Test that clearing the queue resolves waiting submitters with a fallback."""
        score = AsyncMock(side_effect=make_result)
        controller, queue, metrics = make_controller(score, recording_sleep)
        queue.pause()

        task = asyncio.create_task(controller.submit(make_request("cleared")))
        await asyncio.sleep(0)
        assert queue.size == 1

        queue.clear()
        result = await task

        assert result.reason == FallbackReason.CLEARED
        score.assert_not_awaited()
        assert metrics.total_errors == 1

    @pytest.mark.asyncio
    async def test_closed_queue_falls_back(self, sample_request, recording_sleep):
        """Test that submitting to a closed queue still yields a result."""
        score = AsyncMock(side_effect=make_result)
        controller, queue, _ = make_controller(score, recording_sleep)
        queue.close()

        result = await controller.submit(sample_request)

        assert result.reason == FallbackReason.CLOSED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "boost,expected",
        [
            (0, ["retry", "other", "retry"]),
            (1, ["retry", "retry", "other"]),
        ],
    )
    async def test_retry_requeue_position(self, boost, expected):
        """Test that retries re-enter behind waiting jobs unless a priority boost is set."""
        order = []
        gate = asyncio.Event()

        async def score(payload):
            order.append(payload.session_code)
            if payload.session_code == "retry" and order.count("retry") == 1:
                raise RateLimitResponse()
            return make_result(payload)

        async def held_sleep(delay):
            await gate.wait()

        controller, queue, _ = make_controller(
            score, held_sleep, retry=RetryConfig(retry_priority_boost=boost)
        )

        retried = asyncio.create_task(controller.submit(make_request("retry")))
        await asyncio.sleep(0.01)
        assert order == ["retry"]

        queue.pause()
        other = asyncio.create_task(controller.submit(make_request("other")))
        await asyncio.sleep(0)
        gate.set()
        await asyncio.sleep(0.01)
        assert queue.size == 2

        queue.resume()
        await asyncio.gather(retried, other)

        assert order == expected

    @pytest.mark.asyncio
    async def test_metrics_account_for_every_job(self, recording_sleep):
        """Test that processed plus errors equals submitted once all jobs resolve."""
        outcomes = {"ok-1": None, "ok-2": None, "bad": ServerErrorResponse(), "slow": RateLimitResponse()}

        async def score(payload):
            error = outcomes[payload.session_code]
            if error is not None:
                raise error
            return make_result(payload)

        controller, _, metrics = make_controller(score, recording_sleep)
        await asyncio.gather(*(controller.submit(make_request(name)) for name in outcomes))

        assert metrics.total_submitted == 4
        assert metrics.total_processed == 2
        assert metrics.total_errors == 2
        assert metrics.total_processed + metrics.total_errors == metrics.total_submitted
