"""Parse and validate LLM responses into scoring results."""

import json
import logging
import math
import re
from typing import Any, Optional

from pydantic import ValidationError

from analysis_queue.errors import MalformedResponseError
from analysis_queue.models.results import (
    ComplianceFeedback,
    ScoringResult,
    SectionFeedback,
    StudentAnswers,
    WritingQuality,
)
from analysis_queue.models.submission import AnalysisRequest

logger = logging.getLogger("analysis_queue.scoring.parser")

DEFAULT_SCORE = 75

DEFAULT_RECOMMENDATIONS = [
    "Review regulatory requirements thoroughly",
    "Include specific implementation details",
    "Consider stakeholder perspectives",
    "Quantify impacts where possible",
]

DEFAULT_NEXT_STEPS = [
    "Practice with additional regulatory scenarios",
    "Focus on concise professional communication",
]


def extract_json_from_response(content: str) -> Optional[str]:
    """Extract a JSON object from an LLM response that may contain prose or markdown.

    Args:
        content: Raw LLM response content.

    Returns:
        The JSON text, or None if no object-like span was found.
    """
    content = content.strip()

    # Prefer a fenced code block
    matches = re.findall(r"```(?:json)?\s*\n?([\s\S]*?)\n?```", content)
    if matches:
        return matches[0].strip()

    # Otherwise take the outermost {...} span
    match = re.search(r"\{[\s\S]*\}", content)
    if match:
        return match.group(0)

    return None


def _value(data: dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


def _score(data: dict[str, Any], key: str) -> int:
    """Read a 0-100 score, rounding half up and clamping to range.

    Missing or non-numeric values fall back to DEFAULT_SCORE.
    """
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if value is not None:
            logger.warning(f"Non-numeric {key} {value!r}, using {DEFAULT_SCORE}")
        return DEFAULT_SCORE
    if not math.isfinite(value):
        return DEFAULT_SCORE
    return max(0, min(100, math.floor(value + 0.5)))


def _section(data: Any, strengths: list[str], improvements: list[str]) -> SectionFeedback:
    data = data if isinstance(data, dict) else {}
    return SectionFeedback(
        score=_score(data, "score"),
        strengths=_value(data, "strengths", strengths),
        improvements=_value(data, "improvements", improvements),
        professional_example=_value(data, "professional_example", "Professional example not provided"),
    )


def parse_scoring_response(
    content: str,
    request: AnalysisRequest,
    model_used: Optional[str] = None,
) -> ScoringResult:
    """Parse an LLM scoring response into a ScoringResult.

    Missing sections are filled with neutral defaults and scores are
    rounded into the 0-100 range. A response with no parseable JSON object
    is rejected.

    Args:
        content: Raw LLM response content.
        request: The submission that was scored.
        model_used: Model that produced the response.

    Returns:
        Parsed ScoringResult.

    Raises:
        MalformedResponseError: If the response cannot be parsed.
    """
    json_text = extract_json_from_response(content)
    if json_text is None:
        logger.error(f"No JSON object in scoring response: {content[:200]}")
        raise MalformedResponseError("Scoring response did not contain a JSON object")

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {json_text[:500]}")
        raise MalformedResponseError(f"Invalid JSON in scoring response: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("Scoring response JSON is not an object")

    compliance = data.get("regulatory_compliance") or {}
    writing = data.get("writing_quality") or {}

    try:
        return ScoringResult(
            session_id=request.session_code,
            overall_score=_score(data, "overall_score"),
            executive_summary=_section(
                data.get("executive_summary"),
                ["Clear structure", "Professional tone", "Good summary"],
                ["More specific details needed", "Include timelines", "Quantify impacts"],
            ),
            impact_analysis=_section(
                data.get("impact_analysis"),
                ["Good analysis", "Stakeholder awareness", "Clear impacts"],
                ["More depth needed", "Include mitigation", "Quantify impacts"],
            ),
            regulatory_compliance=ComplianceFeedback(
                score=_score(compliance, "score"),
                feedback=_value(compliance, "feedback", "Shows understanding of regulatory context"),
                missing_elements=_value(compliance, "missing_elements", []),
            ),
            writing_quality=WritingQuality(
                score=_score(writing, "score"),
                clarity=_score(writing, "clarity"),
                conciseness=_score(writing, "conciseness"),
                professionalism=_score(writing, "professionalism"),
                feedback=_value(writing, "feedback", "Professional writing style demonstrated"),
            ),
            recommendations=_value(data, "recommendations", DEFAULT_RECOMMENDATIONS),
            next_steps=_value(data, "next_steps", DEFAULT_NEXT_STEPS),
            model=model_used,
            student_answers=StudentAnswers(
                executive_summary=request.executive_summary,
                impact_analysis=request.impact_analysis,
            ),
        )
    except (ValidationError, AttributeError) as e:
        logger.error(f"Scoring response failed validation: {e}")
        raise MalformedResponseError(f"Scoring response failed validation: {e}") from e
