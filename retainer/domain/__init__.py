"""Domain layer - pure domain models.

Pydantic models with no external dependencies: memories, episodes,
situations, reasoning trails, action records and per-agent config.
Store interfaces and implementations live in retainer.infrastructure.stores.
"""

from retainer.domain.actions import (
    AgentAction,
    AgentActionResult,
    Communication,
    Feedback,
    ReasoningLog,
)
from retainer.domain.agent_config import AgentConfig, BrandSettings, LimitsConfig
from retainer.domain.enums import (
    GLOBAL_SCOPE,
    ActionStatus,
    AgentType,
    ConfidenceLevel,
    FeedbackType,
    MemoryType,
    Outcome,
    ReasoningStepType,
    StrategyTemplate,
)
from retainer.domain.episode import ActionTaken, Episode, EpisodeResolution, Lesson
from retainer.domain.errors import (
    ActionExecutionError,
    ActionNotFoundError,
    EpisodeNotFoundError,
    InvalidActionStateError,
    NotFoundError,
    RetainerError,
    SubscriberNotFoundError,
)
from retainer.domain.memory import Memory, OutcomeContent, PatternContent, PreferenceContent
from retainer.domain.reasoning import (
    ActionOption,
    EvaluatedOption,
    ReasoningResult,
    ReasoningStep,
)
from retainer.domain.situation import AgentEvent, Situation, Subscriber, SubscriberSnapshot

__all__ = [
    # Enums
    "GLOBAL_SCOPE",
    "ActionStatus",
    "AgentType",
    "ConfidenceLevel",
    "FeedbackType",
    "MemoryType",
    "Outcome",
    "ReasoningStepType",
    "StrategyTemplate",
    # Memory
    "Memory",
    "OutcomeContent",
    "PatternContent",
    "PreferenceContent",
    # Episodes
    "ActionTaken",
    "Episode",
    "EpisodeResolution",
    "Lesson",
    # Situation
    "AgentEvent",
    "Situation",
    "Subscriber",
    "SubscriberSnapshot",
    # Reasoning
    "ActionOption",
    "EvaluatedOption",
    "ReasoningResult",
    "ReasoningStep",
    # Actions
    "AgentAction",
    "AgentActionResult",
    "Communication",
    "Feedback",
    "ReasoningLog",
    # Config
    "AgentConfig",
    "BrandSettings",
    "LimitsConfig",
    # Errors
    "ActionExecutionError",
    "ActionNotFoundError",
    "EpisodeNotFoundError",
    "InvalidActionStateError",
    "NotFoundError",
    "RetainerError",
    "SubscriberNotFoundError",
]
