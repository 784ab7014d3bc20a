"""Learning analytics result models."""

from pydantic import BaseModel, Field

from retainer.domain.episode import Lesson
from retainer.domain.memory import PatternContent


class LearningStats(BaseModel):
    """Aggregate view of what an agent has learned."""

    total_episodes: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    top_patterns: list[PatternContent] = Field(default_factory=list)
    recent_lessons: list[Lesson] = Field(default_factory=list)


class TriggerInsights(BaseModel):
    """Resolved-episode statistics for one trigger."""

    trigger: str
    total_cases: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    best_strategy: str | None = None
    avg_hours_to_resolution: float | None = None


class BatchAnalysis(BaseModel):
    """Patterns and readable insights mined from a batch of resolved episodes."""

    patterns: list[PatternContent] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
