"""Memory models: typed, importance-weighted observations."""

from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retainer.domain.enums import MemoryType


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class Memory(BaseModel):
    """A persisted, typed observation consumed by future reasoning.

    Owned by (user_id, agent_type) where agent_type may be "global";
    subscriber_id narrows the scope to one subscriber.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    user_id: str = Field(..., description="Owning account")
    agent_type: str = Field(..., description="Agent type or 'global'")
    subscriber_id: str | None = Field(default=None, description="Subscriber scope")
    memory_type: MemoryType = Field(..., description="What the memory records")
    content: dict[str, Any] = Field(default_factory=dict, description="Typed payload")
    embedding: list[float] = Field(..., description="Unit vector of the content")
    importance_score: float = Field(default=0.5, description="Clamped to [0, 1]")
    access_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    last_accessed_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime | None = Field(default=None)

    @field_validator("importance_score", mode="before")
    @classmethod
    def clamp_importance(cls, value: float) -> float:
        return max(0.0, min(1.0, float(value)))

    @field_validator("embedding")
    @classmethod
    def require_embedding(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("Memory embedding cannot be empty")
        return value


class PatternContent(BaseModel):
    """Content shape of a pattern memory."""

    trigger: str
    best_action: str = Field(..., description="'{action}_{strategy}' key")
    success_rate: float = Field(..., ge=0.0, le=1.0)
    sample_size: int = Field(..., ge=1)
    applicable_to: dict[str, Any] = Field(default_factory=dict)


class PreferenceContent(BaseModel):
    """Content shape of a preference memory."""

    prefers_discount: bool | None = None
    preferred_tone: Literal["formal", "friendly", "urgent"] | None = None
    best_contact_time: Literal["morning", "afternoon", "evening"] | None = None
    responsive_to: list[str] | None = None
    avoid_topics: list[str] | None = None


class OutcomeContent(BaseModel):
    """Content shape of an outcome memory."""

    action: str
    result: Literal["positive", "negative", "neutral"]
    revenue_impact: int | None = Field(default=None, description="In cents")
    details: dict[str, Any] = Field(default_factory=dict)
