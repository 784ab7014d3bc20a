"""Reasoning trail and decision models."""

from typing import Any

from pydantic import BaseModel, Field

from retainer.domain.enums import ReasoningStepType


class ReasoningStep(BaseModel):
    """One stage of a reasoning run, kept for audit."""

    step_number: int = Field(..., ge=1, le=6)
    step_type: ReasoningStepType
    thought: str
    data: dict[str, Any] = Field(default_factory=dict)
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    duration_ms: float = Field(default=0.0, ge=0.0)


class ActionOption(BaseModel):
    """A candidate action."""

    action: str
    strategy: str
    details: dict[str, Any] = Field(default_factory=dict)
    predicted_success_rate: float | None = None
    reasoning: str | None = None


class EvaluatedOption(ActionOption):
    """A candidate action with its evaluation score."""

    score: float = Field(..., ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)


class ReasoningResult(BaseModel):
    """Outcome of a reasoning run: the decision and how it was reached."""

    decision: ActionOption
    confidence: float = Field(..., ge=0.0, le=1.0)
    steps: list[ReasoningStep] = Field(default_factory=list)
    fallback: bool = Field(default=False, description="True if the default decision was used")
