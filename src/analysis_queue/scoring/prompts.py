"""Prompt templates for scoring regulatory writing submissions."""

from analysis_queue.models.submission import AnalysisRequest

ANALYSIS_SYSTEM_PROMPT = """You are an expert regulatory analyst who coaches students on professional regulatory writing.
You score submissions fairly and give specific, actionable feedback.
Always respond with a single JSON object and nothing else."""

ANALYSIS_PROMPT_TEMPLATE = """Analyze the following student submission for a regulatory writing exercise.

Language: {language}

DOCUMENT EXCERPT:
{document_excerpt}

STUDENT'S EXECUTIVE SUMMARY:
{executive_summary}

STUDENT'S IMPACT ANALYSIS:
{impact_analysis}

Provide a comprehensive analysis with scores and detailed feedback. Format your response as JSON with this EXACT structure:

{{
  "overall_score": <number 0-100>,
  "executive_summary": {{
    "score": <number 0-100>,
    "strengths": ["strength 1", "strength 2", "strength 3"],
    "improvements": ["improvement 1", "improvement 2", "improvement 3"],
    "professional_example": "A 2-3 sentence professional executive summary demonstrating best practices"
  }},
  "impact_analysis": {{
    "score": <number 0-100>,
    "strengths": ["strength 1", "strength 2", "strength 3"],
    "improvements": ["improvement 1", "improvement 2", "improvement 3"],
    "professional_example": "A professional paragraph demonstrating excellent impact analysis"
  }},
  "regulatory_compliance": {{
    "score": <number 0-100>,
    "feedback": "Specific assessment of regulatory understanding",
    "missing_elements": ["missing element 1", "missing element 2"]
  }},
  "writing_quality": {{
    "score": <number 0-100>,
    "clarity": <number 0-100>,
    "conciseness": <number 0-100>,
    "professionalism": <number 0-100>,
    "feedback": "Specific writing quality assessment"
  }},
  "recommendations": ["Actionable recommendation 1", "Actionable recommendation 2", "Actionable recommendation 3", "Actionable recommendation 4"],
  "next_steps": ["Next step 1", "Next step 2"]
}}

Evaluate based on:
- Regulatory compliance understanding
- Executive summary conciseness and focus
- Impact analysis relevance to stakeholders
- Professional communication style
- Implementation feasibility awareness"""


def build_analysis_prompt(request: AnalysisRequest, excerpt_chars: int = 1500) -> str:
    """Build the user prompt for scoring one submission.

    Args:
        request: The submission to score.
        excerpt_chars: Maximum characters of the source document to include.

    Returns:
        Formatted prompt string.
    """
    return ANALYSIS_PROMPT_TEMPLATE.format(
        language=request.language,
        document_excerpt=request.document_text[:excerpt_chars],
        executive_summary=request.executive_summary,
        impact_analysis=request.impact_analysis,
    )
