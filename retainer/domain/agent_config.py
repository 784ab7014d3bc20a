"""Per-agent configuration and brand voice.

These are domain records loaded from the agent settings store, not
process settings. Defaults are used when nothing is stored.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from retainer.domain.enums import ConfidenceLevel, StrategyTemplate


class LimitsConfig(BaseModel):
    """Rate and timing limits checked before reasoning."""

    max_budget_month: int | None = Field(default=None, description="In cents")
    max_actions_day: int | None = Field(default=50, ge=0)
    max_emails_client_week: int | None = Field(default=3, ge=0)
    max_offers_client_year: int | None = Field(default=4, ge=0)
    send_hours_start: int | None = Field(default=9, ge=0, le=23)
    send_hours_end: int | None = Field(default=19, ge=0, le=24)
    timezone: str = "Europe/Paris"
    no_weekend: bool = False


class AgentConfig(BaseModel):
    """How one agent type behaves for one account."""

    user_id: str
    agent_type: str
    is_active: bool = False
    confidence_level: str = Field(
        default=ConfidenceLevel.REVIEW_ALL.value,
        description="review_all, auto_with_copy or full_auto; anything else requires approval",
    )
    notification_channels: list[str] = Field(default_factory=lambda: ["app"])
    strategy_template: StrategyTemplate = StrategyTemplate.MODERATE
    strategy_config: dict[str, Any] = Field(default_factory=dict)
    offers_config: dict[str, Any] = Field(default_factory=dict)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)


class BrandSettings(BaseModel):
    """Brand voice used when generating options."""

    user_id: str
    company_name: str | None = "My Company"
    product_type: str | None = None
    product_description: str | None = None
    industry: str | None = None
    tone: Literal["formal", "neutral", "casual", "friendly"] = "neutral"
    humor: Literal["none", "subtle", "yes"] = "none"
    language: str = "en"
    values: list[str] = Field(default_factory=list)
    never_say: list[str] = Field(default_factory=list)
    always_mention: list[str] = Field(default_factory=list)
    signature: str | None = None
