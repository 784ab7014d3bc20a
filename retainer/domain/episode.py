"""Episode models: (situation, action, outcome) triples."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from retainer.domain.enums import Outcome
from retainer.domain.situation import Situation


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class ActionTaken(BaseModel):
    """The action an agent took in an episode."""

    type: str = Field(..., description="email, sms, discount, pause, ...")
    strategy: str = Field(..., description="friendly, urgent, value_focused, ...")
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        """Pattern key for this action."""
        return f"{self.type}_{self.strategy}"


class Lesson(BaseModel):
    """An insight extracted from a resolved episode."""

    insight: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    applicable_to: dict[str, Any] = Field(default_factory=dict)
    recommendation: str | None = None


class Episode(BaseModel):
    """A recorded decision and, once resolved, its outcome.

    The outcome starts as pending and moves to a terminal value once.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    user_id: str = Field(..., description="Owning account")
    agent_type: str = Field(..., description="Agent that took the action")
    subscriber_id: str | None = None
    situation: Situation
    action_taken: ActionTaken
    outcome: Outcome = Field(default=Outcome.PENDING)
    outcome_details: dict[str, Any] | None = None
    lessons_learned: list[Lesson] = Field(default_factory=list)
    situation_embedding: list[float] = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome != Outcome.PENDING


class EpisodeResolution(BaseModel):
    """Fields written when an episode is resolved."""

    outcome: Outcome
    outcome_details: dict[str, Any] | None = None
    lessons_learned: list[Lesson] = Field(default_factory=list)
    resolved_at: datetime = Field(default_factory=utc_now)
