"""Learning engine configuration."""

from pydantic import BaseModel, Field


class LearningConfig(BaseModel):
    """Importance deltas and analytics windows for the learning engine."""

    pattern_reinforce: float = Field(default=0.05, ge=0.0, le=1.0)
    pattern_weaken: float = Field(default=0.03, ge=0.0, le=1.0)
    relevance_boost: float = Field(default=0.05, ge=0.0, le=1.0)
    relevance_penalty: float = Field(default=0.03, ge=0.0, le=1.0)
    relevance_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    relevance_limit: int = Field(default=10, gt=0)
    lesson_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    lesson_max_tokens: int = Field(default=1000, gt=0)
    best_strategy_min_samples: int = Field(default=3, gt=0)
    top_pattern_count: int = Field(default=5, gt=0)
    recent_lesson_count: int = Field(default=10, gt=0)
    timeout: float = Field(default=30.0, gt=0)
