"""Observability configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class ObservabilityConfig(BaseModel):
    """Logging output configuration."""

    log_format: Literal["json", "console"] = Field(default="json")
    redact_pii: bool = Field(default=True)
