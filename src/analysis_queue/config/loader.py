"""Configuration loading and merging logic."""

import json
import os
from pathlib import Path
from typing import Any, Optional

from analysis_queue.config.defaults import (
    CONFIG_SEARCH_PATHS,
    DEFAULT_PROFILE,
    MODEL_ENV_VAR,
    PROFILE_ENV_VAR,
    PROFILES,
)
from analysis_queue.config.models import AnalysisQueueConfig


def find_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file.

    Args:
        explicit_path: Explicitly specified config file path (from CLI).

    Returns:
        Path to config file if found, None otherwise.
    """
    if explicit_path is not None:
        if explicit_path.exists():
            return explicit_path
        raise FileNotFoundError(f"Config file not found: {explicit_path}")

    # Search default locations
    for search_path in CONFIG_SEARCH_PATHS:
        if search_path.exists():
            return search_path

    return None


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file.

    Args:
        path: Path to the configuration file.

    Returns:
        Parsed configuration dictionary.
    """
    with open(path) as f:
        return json.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def profile_defaults(name: str) -> dict[str, Any]:
    """Get the configuration dictionary for a built-in profile.

    Args:
        name: Profile name (see ``PROFILES``).

    Returns:
        Configuration dictionary with the profile's limiter and queue sections.

    Raises:
        ValueError: If the profile is unknown.
    """
    if name not in PROFILES:
        available = ", ".join(sorted(PROFILES))
        raise ValueError(f"Unknown profile '{name}'. Available: {available}")
    return {"profile": name, **json.loads(json.dumps(PROFILES[name]))}


def merge_cli_overrides(
    config: AnalysisQueueConfig,
    model: Optional[str] = None,
    concurrency: Optional[int] = None,
    max_retries: Optional[int] = None,
    job_timeout: Optional[float] = None,
    verbose: Optional[int] = None,
) -> AnalysisQueueConfig:
    """Merge CLI overrides into the configuration.

    CLI arguments take precedence over config file values.

    Args:
        config: Base configuration.
        model: LLM model override.
        concurrency: Queue and limiter concurrency override.
        max_retries: Retry budget override.
        job_timeout: Per-job timeout override, in seconds.
        verbose: Verbosity level override.

    Returns:
        Configuration with CLI overrides applied.
    """
    data = config.model_dump()

    if model is not None:
        data["llm"]["model"] = model
    if concurrency is not None:
        data["queue"]["concurrency"] = concurrency
        data["limiter"]["max_concurrent"] = concurrency
    if max_retries is not None:
        data["retry"]["max_retries"] = max_retries
    if job_timeout is not None:
        data["queue"]["job_timeout_seconds"] = job_timeout
    if verbose is not None:
        data["verbosity"] = verbose

    return AnalysisQueueConfig.model_validate(data)


def load_config(
    config_path: Optional[Path] = None,
    profile: Optional[str] = None,
    **cli_overrides: Any,
) -> AnalysisQueueConfig:
    """Load configuration with CLI overrides.

    Configuration is loaded from the following sources (in order of priority):
    1. CLI arguments (highest priority)
    2. Config file (if found)
    3. Environment variables
    4. Profile defaults (lowest priority)

    Args:
        config_path: Explicit config file path (from --config CLI option).
        profile: Profile name override.
        **cli_overrides: CLI argument overrides.

    Returns:
        Merged configuration object.
    """
    file_data: dict[str, Any] = {}
    found_config = find_config_file(config_path)
    if found_config is not None:
        file_data = load_config_file(found_config)

    profile_name = (
        profile
        or file_data.get("profile")
        or os.environ.get(PROFILE_ENV_VAR)
        or DEFAULT_PROFILE
    )

    env_data: dict[str, Any] = {}
    if model := os.environ.get(MODEL_ENV_VAR):
        env_data["llm"] = {"model": model}

    data = _deep_merge(_deep_merge(profile_defaults(profile_name), env_data), file_data)
    data["profile"] = profile_name

    config = AnalysisQueueConfig.model_validate(data)
    return merge_cli_overrides(config, **cli_overrides)
