"""Protocol definitions for LLM providers."""

from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class LLMMessage(BaseModel):
    """A message in an LLM conversation."""

    role: str
    content: str

    @classmethod
    def user(cls, content: str) -> "LLMMessage":
        """Create a user message."""
        return cls(role="user", content=content)


class LLMUsage(BaseModel):
    """Token usage information from an LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens used."""
        return self.input_tokens + self.output_tokens


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    content: str
    model: str
    usage: LLMUsage = Field(default_factory=LLMUsage)
    stop_reason: Optional[str] = None

    @property
    def was_truncated(self) -> bool:
        """Whether the response was truncated due to max_tokens."""
        return self.stop_reason == "max_tokens"


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers.

    Providers must not retry throttled calls themselves: a 429 has to reach
    the admission controller, which owns the retry budget and backoff.
    """

    @property
    def model_name(self) -> str:
        """Return the model identifier being used."""
        ...

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
            temperature: Sampling temperature (0.0 = deterministic).

        Returns:
            LLMResponse with the completion.
        """
        ...
