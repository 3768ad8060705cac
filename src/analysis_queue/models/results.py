"""Scoring result models.

Two result shapes exist: :class:`ScoringResult`, produced by the scoring
gateway, and :class:`FallbackResult`, synthesized when the gateway could not
be reached in time. Both share the same structure so the UI can render either;
``source`` tells them apart.
"""

from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from analysis_queue.models.enums import FallbackReason, ResultSource


class SectionFeedback(BaseModel):
    """Feedback for one written section (summary or impact analysis)."""

    score: int = Field(ge=0, le=100)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    professional_example: str = ""


class ComplianceFeedback(BaseModel):
    """Assessment of regulatory understanding."""

    score: int = Field(ge=0, le=100)
    feedback: str = ""
    missing_elements: list[str] = Field(default_factory=list)


class WritingQuality(BaseModel):
    """Assessment of writing style."""

    score: int = Field(ge=0, le=100)
    clarity: int = Field(ge=0, le=100)
    conciseness: int = Field(ge=0, le=100)
    professionalism: int = Field(ge=0, le=100)
    feedback: str = ""


class StudentAnswers(BaseModel):
    """Echo of the answers that were scored."""

    executive_summary: str = ""
    impact_analysis: str = ""


class AnalysisBase(BaseModel):
    """Fields common to genuine and fallback results."""

    session_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    overall_score: int = Field(ge=0, le=100)
    executive_summary: SectionFeedback
    impact_analysis: SectionFeedback
    regulatory_compliance: ComplianceFeedback
    writing_quality: WritingQuality
    recommendations: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)
    student_answers: StudentAnswers = Field(default_factory=StudentAnswers)


class ScoringResult(AnalysisBase):
    """A score produced by the scoring gateway."""

    source: Literal[ResultSource.GATEWAY] = ResultSource.GATEWAY
    analysis_type: str = "claude-ai"
    model: Optional[str] = None


class FallbackResult(AnalysisBase):
    """A clearly tagged, lower-confidence substitute score."""

    source: Literal[ResultSource.FALLBACK] = ResultSource.FALLBACK
    analysis_type: str = "demo-fallback"
    reason: FallbackReason
    error: Optional[str] = None


AnalysisResult = Union[ScoringResult, FallbackResult]
