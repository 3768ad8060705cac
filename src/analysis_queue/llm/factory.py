"""Factory function for creating LLM providers."""

from typing import Optional

from analysis_queue.config.models import LLMConfig, LLMProviderType
from analysis_queue.llm.claude import ClaudeProvider
from analysis_queue.llm.protocol import LLMProvider


def create_llm_provider(
    config: Optional[LLMConfig] = None,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
) -> LLMProvider:
    """Create an LLM provider based on configuration.

    Args:
        config: LLMConfig object with provider settings.
        model: Override model name.
        api_key: Override API key.

    Returns:
        LLMProvider instance.

    Raises:
        ValueError: If provider type is not supported.
    """
    if config is None:
        config = LLMConfig()

    effective_model = model or config.model

    if config.provider == LLMProviderType.CLAUDE:
        return ClaudeProvider(model=effective_model, api_key=api_key)

    raise ValueError(f"Unsupported LLM provider: {config.provider}")
