"""Admission control, retry handling and status reporting."""

from analysis_queue.orchestration.admission import AdmissionController, fallback_reason
from analysis_queue.orchestration.status import StatusReporter

__all__ = [
    "AdmissionController",
    "StatusReporter",
    "fallback_reason",
]
