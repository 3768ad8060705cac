"""Rate limiting for calls to the scoring API."""

from analysis_queue.limiter.limiter import RateLimiter
from analysis_queue.limiter.reservoir import Reservoir

__all__ = [
    "RateLimiter",
    "Reservoir",
]
