"""Learning from episode outcomes and feedback."""

from retainer.learning.batch import batch_analyze_episodes
from retainer.learning.engine import (
    FEEDBACK_OUTCOMES,
    LearningEngine,
    detect_preferences,
    tenure_range,
)
from retainer.learning.models import BatchAnalysis, LearningStats, TriggerInsights

__all__ = [
    "BatchAnalysis",
    "FEEDBACK_OUTCOMES",
    "LearningEngine",
    "LearningStats",
    "TriggerInsights",
    "batch_analyze_episodes",
    "detect_preferences",
    "tenure_range",
]
