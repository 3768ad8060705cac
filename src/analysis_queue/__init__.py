"""Analysis Queue.

In-process admission and rate-limiting queue for LLM-backed essay scoring.
Submissions are scheduled under bounded concurrency, gated by a refilling
token reservoir, retried with backoff when the model API throttles, and
always resolve to a usable result (a genuine score or a tagged fallback).
"""

__version__ = "0.1.0"

from analysis_queue.models.enums import FallbackReason, JobState, ResultSource

__all__ = [
    "__version__",
    "FallbackReason",
    "JobState",
    "ResultSource",
]
