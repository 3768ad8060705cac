"""Scoring gateway: the downstream call the admission queue protects."""

import logging
from typing import Optional, Protocol, runtime_checkable

from analysis_queue.config.models import LLMConfig
from analysis_queue.llm.protocol import LLMMessage, LLMProvider
from analysis_queue.models.results import ScoringResult
from analysis_queue.models.submission import AnalysisRequest
from analysis_queue.scoring.parser import parse_scoring_response
from analysis_queue.scoring.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt

logger = logging.getLogger("analysis_queue.scoring.gateway")


@runtime_checkable
class ScoringGateway(Protocol):
    """Anything that can score a submission asynchronously.

    Implementations signal throttling by raising an exception whose
    ``status`` (or ``status_code``) is 429; any other exception is treated
    as a non-retryable gateway failure.
    """

    async def score(self, payload: AnalysisRequest) -> ScoringResult:
        ...


class LLMScoringGateway:
    """Scores submissions with an LLM provider."""

    def __init__(self, provider: LLMProvider, config: Optional[LLMConfig] = None):
        """Initialize the gateway.

        Args:
            provider: LLM provider used for scoring calls.
            config: LLM settings (token limit, temperature, excerpt size).
        """
        self._provider = provider
        self._config = config or LLMConfig()

    @property
    def model_name(self) -> str:
        return self._provider.model_name

    async def score(self, payload: AnalysisRequest) -> ScoringResult:
        """Score one submission.

        Args:
            payload: The submission to score.

        Returns:
            ScoringResult parsed from the model's reply.

        Raises:
            MalformedResponseError: If the reply cannot be parsed.
        """
        prompt = build_analysis_prompt(payload, excerpt_chars=self._config.document_excerpt_chars)

        logger.info(f"Scoring session {payload.session_code} with {self._provider.model_name}")
        response = await self._provider.complete(
            messages=[LLMMessage.user(prompt)],
            system=ANALYSIS_SYSTEM_PROMPT,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )

        if response.was_truncated:
            logger.warning(f"Scoring response for session {payload.session_code} was truncated")

        return parse_scoring_response(response.content, payload, model_used=response.model)
