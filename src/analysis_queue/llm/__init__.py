"""LLM provider abstraction and implementations."""

from analysis_queue.llm.claude import ClaudeProvider
from analysis_queue.llm.factory import create_llm_provider
from analysis_queue.llm.protocol import LLMMessage, LLMProvider, LLMResponse, LLMUsage

__all__ = [
    "ClaudeProvider",
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "LLMUsage",
    "create_llm_provider",
]
