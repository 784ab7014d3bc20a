"""Generative backends.

LLMExecutor is what production wiring uses; MockLLMProvider scripts answers
for tests and offline runs.
"""

from retainer.infrastructure.providers.llm.base import (
    LLMClient,
    LLMMessage,
    LLMResponse,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TokenUsage,
)
from retainer.infrastructure.providers.llm.executor import (
    ExecutionContext,
    LLMExecutor,
    clear_execution_context,
    create_executor,
    get_execution_context,
    set_execution_context,
)
from retainer.infrastructure.providers.llm.mock import MockLLMProvider

__all__ = [
    "ExecutionContext",
    "LLMClient",
    "LLMExecutor",
    "LLMMessage",
    "LLMResponse",
    "MockLLMProvider",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "TokenUsage",
    "clear_execution_context",
    "create_executor",
    "get_execution_context",
    "set_execution_context",
]
