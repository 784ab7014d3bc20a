"""Reasoning pipeline: from a situation to a scored decision."""

from retainer.reasoning.engine import ReasoningEngine
from retainer.reasoning.responses import (
    EvaluationResponse,
    GenerativeResponse,
    LessonsResponse,
    OptionsResponse,
)

__all__ = [
    "EvaluationResponse",
    "GenerativeResponse",
    "LessonsResponse",
    "OptionsResponse",
    "ReasoningEngine",
]
