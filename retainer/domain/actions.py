"""Action records and their audit trail."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from retainer.domain.enums import ActionStatus, FeedbackType, ReasoningStepType
from retainer.domain.reasoning import ActionOption, ReasoningStep


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class AgentAction(BaseModel):
    """An action an agent decided to take."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    agent_type: str
    subscriber_id: str
    action_type: str
    description: str = ""
    status: ActionStatus
    result: dict[str, Any] = Field(default_factory=dict)
    episode_id: UUID | None = Field(default=None, description="Episode opened for this action")
    created_at: datetime = Field(default_factory=utc_now)
    executed_at: datetime | None = None


class ReasoningLog(BaseModel):
    """A persisted reasoning step attached to an action."""

    id: UUID = Field(default_factory=uuid4)
    action_id: UUID
    step_number: int
    step_type: ReasoningStepType
    thought: str
    data: dict[str, Any] = Field(default_factory=dict)
    confidence_score: float | None = None
    duration_ms: float | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_step(cls, action_id: UUID, step: ReasoningStep) -> "ReasoningLog":
        return cls(
            action_id=action_id,
            step_number=step.step_number,
            step_type=step.step_type,
            thought=step.thought,
            data=step.data,
            confidence_score=step.confidence_score,
            duration_ms=step.duration_ms,
        )

    def to_step(self) -> ReasoningStep:
        return ReasoningStep(
            step_number=self.step_number,
            step_type=self.step_type,
            thought=self.thought,
            data=self.data,
            confidence_score=self.confidence_score,
            duration_ms=self.duration_ms or 0.0,
        )


class Communication(BaseModel):
    """A message sent to a subscriber, used for per-subscriber limits."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    subscriber_id: str
    channel: str = Field(..., description="email, sms, ...")
    action_id: UUID | None = None
    created_at: datetime = Field(default_factory=utc_now)


class Feedback(BaseModel):
    """External feedback on an action or subscriber."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    agent_type: str
    feedback_type: FeedbackType
    action_id: UUID | None = None
    subscriber_id: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class AgentActionResult(BaseModel):
    """What AgentCore returns for a handled event."""

    action_id: UUID
    status: ActionStatus
    decision: ActionOption
    confidence: float
    reasoning: list[ReasoningStep]
    requires_approval: bool
