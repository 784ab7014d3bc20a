"""Message and response types for generative calls, and their failures."""

from typing import Any, Protocol

from pydantic import BaseModel, Field


class LLMMessage(BaseModel):
    role: str  # system, user or assistant
    content: str


class TokenUsage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class LLMResponse(BaseModel):
    """Text produced for one prompt and how it was produced."""

    content: str
    model: str
    finish_reason: str | None = None
    usage: TokenUsage | None = None
    # step, latency_ms, provider and the execution context of the call
    metadata: dict[str, Any] = Field(default_factory=dict)


class LLMClient(Protocol):
    """What the reasoning and learning engines need from a generative backend."""

    async def generate(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        step: str | None = None,
    ) -> LLMResponse: ...


class ProviderError(Exception):
    """A generative call failed."""


class RateLimitError(ProviderError):
    """The provider refused the call for quota reasons."""


class ProviderTimeoutError(ProviderError):
    """The call was cancelled after exceeding its timeout."""
