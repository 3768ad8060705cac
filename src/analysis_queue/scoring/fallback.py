"""Fallback results served when the scoring gateway cannot deliver.

The fallback is a structurally complete analysis built from simple content
heuristics. It is always tagged ``source="fallback"`` so callers can tell it
apart from a genuine score and warn the user.
"""

import logging
from typing import Optional

from analysis_queue.models.enums import FallbackReason
from analysis_queue.models.results import (
    ComplianceFeedback,
    FallbackResult,
    SectionFeedback,
    StudentAnswers,
    WritingQuality,
)
from analysis_queue.models.submission import AnalysisRequest

logger = logging.getLogger("analysis_queue.scoring.fallback")

MIN_CONTENT_SCORE = 45
MAX_CONTENT_SCORE = 95

QUALITY_KEYWORDS = [
    ("regulatory", "compliance"),
    ("stakeholder",),
    ("implementation",),
    ("impact", "effect"),
]

SUMMARY_EXAMPLE = (
    "The new Anti-Money Laundering regulations require all financial institutions to "
    "implement enhanced customer due diligence procedures by December 2024, affecting "
    "approximately 12,000 banks nationwide. Primary compliance objectives include "
    "strengthening transaction monitoring capabilities with estimated implementation "
    "costs of $2.3 billion industry-wide."
)

IMPACT_EXAMPLE = (
    "Small community banks will face disproportionate challenges due to limited "
    "compliance infrastructure, requiring 18-24 months for full implementation at costs "
    "averaging $850,000 per institution. Large banks can leverage existing frameworks but "
    "must invest $25-50 million in system upgrades. Recommended phased approach: policy "
    "development, then technology implementation, then testing and validation."
)


def content_score(text: Optional[str]) -> int:
    """Heuristic 45-95 score from length and vocabulary of an answer.

    Args:
        text: The student's answer.

    Returns:
        Integer score clamped to [45, 95].
    """
    if not text or len(text) < 10:
        return MIN_CONTENT_SCORE

    score = 60
    length = len(text)
    if 100 <= length <= 500:
        score += 15
    elif length >= 50:
        score += 10

    lowered = text.lower()
    for keywords in QUALITY_KEYWORDS:
        if any(word in lowered for word in keywords):
            score += 5

    # Multiple sentences
    if len(text.split(".")) >= 3:
        score += 5

    return min(MAX_CONTENT_SCORE, max(MIN_CONTENT_SCORE, score))


class FallbackProducer:
    """Builds tagged placeholder analyses for submissions."""

    def produce(
        self,
        request: AnalysisRequest,
        reason: FallbackReason,
        error: Optional[str] = None,
    ) -> FallbackResult:
        """Build a fallback result for a submission.

        Args:
            request: The submission that could not be scored.
            reason: Why the gateway result is unavailable.
            error: Message of the terminal error, if any.

        Returns:
            FallbackResult tagged with ``reason``.
        """
        summary_score = content_score(request.executive_summary)
        analysis_score = content_score(request.impact_analysis)
        overall = round((summary_score + analysis_score) / 2)

        logger.info(f"Serving fallback analysis for session {request.session_code} ({reason.value})")

        return FallbackResult(
            session_id=request.session_code,
            overall_score=overall,
            executive_summary=SectionFeedback(
                score=summary_score,
                strengths=[
                    "Clear presentation of key information",
                    "Appropriate length for executive audience",
                    "Professional tone maintained",
                ],
                improvements=[
                    "Include specific regulatory deadlines",
                    "Identify primary stakeholders explicitly",
                    "Add compliance cost implications",
                ],
                professional_example=SUMMARY_EXAMPLE,
            ),
            impact_analysis=SectionFeedback(
                score=analysis_score,
                strengths=[
                    "Good analytical framework",
                    "Consideration of implementation challenges",
                    "Awareness of stakeholder implications",
                ],
                improvements=[
                    "Quantify financial impact more specifically",
                    "Include risk mitigation strategies",
                    "Address compliance timeline variations",
                ],
                professional_example=IMPACT_EXAMPLE,
            ),
            regulatory_compliance=ComplianceFeedback(
                score=overall,
                feedback=(
                    "Demonstrates understanding of regulatory framework with opportunities "
                    "for deeper analysis. Consider incorporating specific regulatory "
                    "citations and enforcement mechanisms."
                ),
                missing_elements=[
                    "Specific penalty structures for non-compliance",
                    "Regulatory reporting requirements",
                    "International coordination aspects",
                ],
            ),
            writing_quality=WritingQuality(
                score=overall,
                clarity=85 if summary_score > 80 else 75,
                conciseness=80 if analysis_score > 80 else 70,
                professionalism=85,
                feedback=(
                    "Professional communication style with clear structure. Consider using "
                    "more specific data points and quantitative metrics to strengthen arguments."
                ),
            ),
            recommendations=[
                "Incorporate specific regulatory deadlines and milestones",
                "Quantify financial and operational impacts",
                "Develop stakeholder-specific implementation strategies",
                "Include risk assessment and mitigation planning",
            ],
            next_steps=[
                "Practice analyzing complex regulatory scenarios",
                "Study successful regulatory implementation case studies",
            ],
            student_answers=StudentAnswers(
                executive_summary=request.executive_summary,
                impact_analysis=request.impact_analysis,
            ),
            reason=reason,
            error=error,
        )
