"""Pydantic configuration models for the analysis queue."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LLMProviderType(str, Enum):
    """Supported LLM providers."""

    CLAUDE = "claude"


class LimiterConfig(BaseModel):
    """Rate limiter (reservoir) settings guarding the scoring API."""

    max_concurrent: int = Field(default=1, ge=1, le=100)
    min_spacing_seconds: float = Field(default=12.0, ge=0.0)
    reservoir_capacity: int = Field(default=5, ge=1)
    refill_amount: int = Field(default=5, ge=1)
    refill_interval_seconds: float = Field(default=60.0, gt=0.0)
    initial_tokens: Optional[int] = Field(default=None, ge=0)

    # Leak strategy
    high_water: Optional[int] = Field(default=None, ge=0)
    max_wait_seconds: Optional[float] = Field(default=None, gt=0.0)

    @model_validator(mode="after")
    def _check_initial_tokens(self) -> "LimiterConfig":
        if self.initial_tokens is not None and self.initial_tokens > self.reservoir_capacity:
            raise ValueError("initial_tokens cannot exceed reservoir_capacity")
        return self


class QueueConfig(BaseModel):
    """Job queue admission settings."""

    concurrency: int = Field(default=1, ge=1, le=100)
    interval_seconds: float = Field(default=12.0, ge=0.0)
    job_timeout_seconds: float = Field(default=300.0, gt=0.0)


class RetryConfig(BaseModel):
    """Retry and backoff policy for throttled attempts."""

    max_retries: int = Field(default=3, ge=0, le=10)
    backoff_step_seconds: float = Field(default=30.0, ge=0.0)
    retry_timeouts: int = Field(default=1, ge=0)
    retry_priority_boost: int = 0


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: LLMProviderType = LLMProviderType.CLAUDE
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = Field(default=2500, ge=1, le=100000)
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    document_excerpt_chars: int = Field(default=1500, ge=0)


class AnalysisQueueConfig(BaseModel):
    """Root configuration model."""

    profile: str = "conservative"
    limiter: LimiterConfig = Field(default_factory=LimiterConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    verbosity: int = Field(default=1, ge=0, le=3)

    model_config = ConfigDict(extra="ignore")  # Ignore unknown fields in config file
