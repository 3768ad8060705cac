"""Data models for the analysis queue."""

from analysis_queue.models.enums import FallbackReason, JobState, ResultSource
from analysis_queue.models.job import Job, generate_job_id
from analysis_queue.models.results import (
    AnalysisResult,
    ComplianceFeedback,
    FallbackResult,
    ScoringResult,
    SectionFeedback,
    StudentAnswers,
    WritingQuality,
)
from analysis_queue.models.status import (
    QueueStatus,
    ReservoirStatus,
    StatusSnapshot,
    WaitEstimate,
)
from analysis_queue.models.submission import AnalysisRequest

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "ComplianceFeedback",
    "FallbackReason",
    "FallbackResult",
    "Job",
    "JobState",
    "QueueStatus",
    "ReservoirStatus",
    "ResultSource",
    "ScoringResult",
    "SectionFeedback",
    "StatusSnapshot",
    "StudentAnswers",
    "WaitEstimate",
    "WritingQuality",
    "generate_job_id",
]
