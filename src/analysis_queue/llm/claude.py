"""Claude/Anthropic LLM provider implementation."""

import logging
from typing import Optional

from anthropic import AsyncAnthropic

from analysis_queue.llm.protocol import LLMMessage, LLMResponse, LLMUsage

logger = logging.getLogger("analysis_queue.llm.claude")


class ClaudeProvider:
    """Claude/Anthropic implementation of the LLM provider protocol.

    The Anthropic client's own retries are disabled; ``RateLimitError``
    (status 429) propagates so the admission controller can back off.
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the Claude provider.

        Args:
            model: Claude model ID to use.
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var).
            timeout: Optional HTTP timeout in seconds.
        """
        client_kwargs = {"api_key": api_key, "max_retries": 0}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = AsyncAnthropic(**client_kwargs)
        self._model = model

    @property
    def model_name(self) -> str:
        """Return the model identifier."""
        return self._model

    async def complete(
        self,
        messages: list[LLMMessage],
        system: Optional[str] = None,
        max_tokens: int = 2500,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Send messages and get a completion.

        Args:
            messages: List of conversation messages.
            system: Optional system prompt.
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with the completion.
        """
        kwargs = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
        }

        if system:
            kwargs["system"] = system

        logger.debug(f"Calling {self._model} with {len(messages)} message(s)")
        response = await self._client.messages.create(**kwargs)

        # Extract text content
        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        return LLMResponse(
            content=content,
            model=response.model,
            usage=LLMUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
            stop_reason=response.stop_reason,
        )
