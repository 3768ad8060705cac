"""Configuration management for the analysis queue."""

from analysis_queue.config.loader import load_config, profile_defaults
from analysis_queue.config.models import (
    AnalysisQueueConfig,
    LimiterConfig,
    LLMConfig,
    QueueConfig,
    RetryConfig,
)

__all__ = [
    "AnalysisQueueConfig",
    "LLMConfig",
    "LimiterConfig",
    "QueueConfig",
    "RetryConfig",
    "load_config",
    "profile_defaults",
]
