"""Enums shared across the agent domain."""

from enum import Enum

GLOBAL_SCOPE = "global"


class AgentType(str, Enum):
    """Kind of autonomous agent."""

    RECOVERY = "recovery"
    RETENTION = "retention"
    CONVERSION = "conversion"
    ONBOARDING = "onboarding"


class MemoryType(str, Enum):
    """What a memory records."""

    INTERACTION = "interaction"
    PREFERENCE = "preference"
    PATTERN = "pattern"
    OUTCOME = "outcome"
    FACT = "fact"


class Outcome(str, Enum):
    """Episode outcome. PENDING is the only non-terminal value."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    IGNORED = "ignored"


class ReasoningStepType(str, Enum):
    """Stages of the reasoning pipeline."""

    CONTEXT_GATHERING = "context_gathering"
    MEMORY_RETRIEVAL = "memory_retrieval"
    EPISODE_RETRIEVAL = "episode_retrieval"
    OPTION_GENERATION = "option_generation"
    EVALUATION = "evaluation"
    DECISION = "decision"


class ConfidenceLevel(str, Enum):
    """How much autonomy an agent has before a human must approve."""

    REVIEW_ALL = "review_all"
    AUTO_WITH_COPY = "auto_with_copy"
    FULL_AUTO = "full_auto"


class StrategyTemplate(str, Enum):
    """Overall aggressiveness of an agent."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"
    CUSTOM = "custom"


class ActionStatus(str, Enum):
    """Lifecycle of an action record."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"
    FAILED = "failed"


class FeedbackType(str, Enum):
    """External feedback on an action or subscriber."""

    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"
    CHURNED = "churned"
    RECOVERED = "recovered"
    MANUAL_RATING = "manual_rating"
