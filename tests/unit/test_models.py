"""Tests for job, enum and result models."""

import pytest

from analysis_queue.models import Job, JobState, WaitEstimate
from analysis_queue.models.job import generate_job_id
from tests.conftest import make_request


class TestJobState:
    """Tests for JobState."""

    @pytest.mark.parametrize(
        "state,terminal",
        [
            (JobState.QUEUED, False),
            (JobState.RUNNING, False),
            (JobState.RETRYING, False),
            (JobState.COMPLETED, True),
            (JobState.FAILED_FALLBACK, True),
        ],
    )
    def test_is_terminal(self, state, terminal):
        """Test which states are terminal."""
        assert state.is_terminal is terminal


class TestJob:
    """Tests for Job."""

    def test_generate_job_id(self):
        """Test that job IDs are prefixed and unique."""
        ids = {generate_job_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(job_id.startswith("job_") for job_id in ids)

    def test_defaults(self):
        """Test a freshly submitted job."""
        job = Job(payload=make_request(), max_retries=3, retries_remaining=3)
        assert job.state == JobState.QUEUED
        assert job.attempts == 0
        assert job.started_at is None
        assert job.duration_seconds is None
        assert not job.is_terminal

    def test_consume_retry(self):
        """Test that the retry budget counts down and cannot go negative."""
        job = Job(payload=make_request(), max_retries=2, retries_remaining=2)
        assert job.consume_retry() == 1
        assert job.consume_retry() == 0
        with pytest.raises(ValueError):
            job.consume_retry()
        assert job.retries_remaining == 0

    def test_payload_kept_unchanged(self):
        """Test that the payload is stored as given."""
        request = make_request("opaque")
        job = Job(payload=request)
        assert job.payload == request


class TestWaitEstimate:
    """Tests for WaitEstimate."""

    def test_fields(self):
        """Test the estimate model."""
        estimate = WaitEstimate(seconds=72, minutes=2, human_readable="2 minutes")
        assert estimate.model_dump() == {"seconds": 72, "minutes": 2, "human_readable": "2 minutes"}
