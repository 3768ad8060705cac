"""In-process stand-in for the scoring API, used for load simulation."""

import asyncio
import json
import logging
import random
from typing import Optional

from analysis_queue.errors import RATE_LIMIT_STATUS
from analysis_queue.models.results import ScoringResult
from analysis_queue.models.submission import AnalysisRequest
from analysis_queue.scoring.fallback import content_score
from analysis_queue.scoring.parser import parse_scoring_response

logger = logging.getLogger("analysis_queue.scoring.simulated")


class SimulatedAPIError(Exception):
    """Error shaped like an HTTP client error, carrying a status code."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class SimulatedScoringGateway:
    """Scores submissions after a random delay, sometimes throttling or failing."""

    def __init__(
        self,
        latency: float = 2.0,
        jitter: float = 0.5,
        rate_limit_probability: float = 0.0,
        error_probability: float = 0.0,
        seed: Optional[int] = None,
    ):
        """Initialize the simulated gateway.

        Args:
            latency: Mean response time in seconds.
            jitter: Fractional spread applied to the latency.
            rate_limit_probability: Chance that a call fails with status 429.
            error_probability: Chance that a call fails with status 500.
            seed: Optional random seed for reproducible runs.
        """
        self._latency = latency
        self._jitter = jitter
        self._rate_limit_probability = rate_limit_probability
        self._error_probability = error_probability
        self._random = random.Random(seed)
        self.calls = 0

    @property
    def model_name(self) -> str:
        return "simulated"

    async def score(self, payload: AnalysisRequest) -> ScoringResult:
        self.calls += 1
        spread = self._latency * self._jitter
        await asyncio.sleep(max(0.0, self._random.uniform(self._latency - spread, self._latency + spread)))

        roll = self._random.random()
        if roll < self._rate_limit_probability:
            raise SimulatedAPIError("429 Too Many Requests", status=RATE_LIMIT_STATUS)
        if roll < self._rate_limit_probability + self._error_probability:
            raise SimulatedAPIError("500 Internal Server Error", status=500)

        summary = content_score(payload.executive_summary)
        impact = content_score(payload.impact_analysis)
        reply = json.dumps({
            "overall_score": round((summary + impact) / 2),
            "executive_summary": {"score": summary},
            "impact_analysis": {"score": impact},
        })
        return parse_scoring_response(reply, payload, model_used=self.model_name)
