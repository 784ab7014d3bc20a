"""Event orchestration configuration."""

from pydantic import BaseModel, Field


class AgentsConfig(BaseModel):
    """Settings for AgentCore event handling."""

    short_term_ttl_seconds: int = Field(
        default=1800, gt=0, description="Max age of short-term memory entries"
    )
    serialize_subscriber_events: bool = Field(
        default=True,
        description="Process events for the same subscriber one at a time (in-process)",
    )
