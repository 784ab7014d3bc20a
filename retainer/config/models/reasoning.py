"""Reasoning pipeline configuration."""

from pydantic import BaseModel, Field


class ReasoningConfig(BaseModel):
    """Thresholds and limits used by the six-step reasoning pipeline."""

    subscriber_memory_limit: int = Field(default=20, gt=0)
    similar_memory_limit: int = Field(default=10, gt=0)
    similar_memory_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    episode_limit: int = Field(default=15, gt=0)
    episode_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    lesson_confidence_floor: float = Field(default=0.6, ge=0.0, le=1.0)
    near_tie_gap: float = Field(
        default=0.1, ge=0.0, description="Score gap under which the decision is annotated"
    )
    fallback_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    option_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    evaluation_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)
    max_options: int = Field(default=4, gt=0)
    timeout: float = Field(
        default=30.0, gt=0, description="Hard timeout for each generative call"
    )
