"""Scoring gateway, prompts, response parsing and fallback results."""

from analysis_queue.scoring.fallback import FallbackProducer, content_score
from analysis_queue.scoring.gateway import LLMScoringGateway, ScoringGateway
from analysis_queue.scoring.parser import extract_json_from_response, parse_scoring_response
from analysis_queue.scoring.prompts import build_analysis_prompt
from analysis_queue.scoring.simulated import SimulatedScoringGateway

__all__ = [
    "FallbackProducer",
    "LLMScoringGateway",
    "ScoringGateway",
    "SimulatedScoringGateway",
    "build_analysis_prompt",
    "content_score",
    "extract_json_from_response",
    "parse_scoring_response",
]
