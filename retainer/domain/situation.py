"""Subscriber, event and situation models."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class Subscriber(BaseModel):
    """Subscriber record as exposed by the subscriber directory."""

    id: str
    user_id: str = Field(..., description="Owning account")
    email: str
    name: str | None = None
    plan_name: str | None = None
    mrr: int = Field(default=0, description="Monthly recurring revenue in cents")
    created_at: datetime | None = None
    health_score: float | None = None
    last_payment_status: str | None = None
    last_payment_at: datetime | None = None
    total_spent: int | None = Field(default=None, description="In cents")
    country: str | None = None


class SubscriberSnapshot(BaseModel):
    """Point-in-time view of a subscriber used for reasoning."""

    id: str
    email: str
    name: str | None = None
    plan: str | None = None
    mrr: int = Field(default=0, description="In cents")
    tenure_months: int = Field(default=0, ge=0)
    health_score: float | None = None
    last_payment_status: str | None = None
    last_payment_at: datetime | None = None
    previous_interactions: int = Field(default=0, ge=0)
    total_spent: int | None = None
    country: str | None = None


class Situation(BaseModel):
    """Subscriber snapshot plus the triggering event. Built fresh per event."""

    subscriber: SubscriberSnapshot
    trigger: str
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)

    def describe_for_search(self) -> str:
        """Short text used to embed this situation for similarity search."""
        return (
            f"{self.trigger} for a {self.subscriber.plan or 'standard'} customer "
            f"with MRR {self.subscriber.mrr / 100:.2f}, "
            f"customer for {self.subscriber.tenure_months} months"
        )


class AgentEvent(BaseModel):
    """A lifecycle event fed to an agent."""

    type: str = Field(..., description="Trigger name, e.g. payment_failed")
    subscriber_id: str
    data: dict[str, Any] = Field(default_factory=dict)
