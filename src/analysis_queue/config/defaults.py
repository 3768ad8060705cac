"""Default configuration values and built-in throughput profiles."""

from pathlib import Path

# Default configuration file name
DEFAULT_CONFIG_FILENAME = "analysis-queue.config.json"

# Search paths for configuration file (in order of priority)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / DEFAULT_CONFIG_FILENAME,
    Path.home() / ".config" / "analysis-queue" / "config.json",
]

# Environment variables
PROFILE_ENV_VAR = "ANALYSIS_QUEUE_PROFILE"
MODEL_ENV_VAR = "ANALYSIS_QUEUE_MODEL"
LOG_FILE_ENV_VAR = "ANALYSIS_QUEUE_LOG_FILE"

DEFAULT_PROFILE = "conservative"

# Built-in profiles, keyed by name. Each entry holds the "limiter" and
# "queue" sections of AnalysisQueueConfig.
PROFILES: dict[str, dict[str, dict]] = {
    # Low API tier: 5 requests per minute
    "conservative": {
        "limiter": {
            "max_concurrent": 1,
            "min_spacing_seconds": 12.0,
            "reservoir_capacity": 5,
            "refill_amount": 5,
            "refill_interval_seconds": 60.0,
            "high_water": 50,
        },
        "queue": {
            "concurrency": 1,
            "interval_seconds": 12.0,
            "job_timeout_seconds": 300.0,
        },
    },
    # Higher API tier: 400 requests per minute, bursts up to 500
    "high-throughput": {
        "limiter": {
            "max_concurrent": 6,
            "min_spacing_seconds": 1.0,
            "reservoir_capacity": 500,
            "refill_amount": 400,
            "refill_interval_seconds": 60.0,
            "high_water": 500,
        },
        "queue": {
            "concurrency": 6,
            "interval_seconds": 1.0,
            "job_timeout_seconds": 300.0,
        },
    },
}
