"""Utility functions for the analysis queue."""

from analysis_queue.utils.logging import setup_logging

__all__ = [
    "setup_logging",
]
