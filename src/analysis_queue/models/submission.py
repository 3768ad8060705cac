"""Submission payload handed to the scoring gateway."""

from typing import Optional

from pydantic import BaseModel


class AnalysisRequest(BaseModel):
    """A student's written answers plus the document they refer to."""

    session_code: str
    executive_summary: str = ""
    impact_analysis: str = ""
    language: str = "english"
    document_id: Optional[str] = None
    document_text: str = ""
