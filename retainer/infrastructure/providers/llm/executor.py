"""Generative backend shared by the reasoning and learning engines.

Built once from `providers.llm` and injected wherever a prompt has to be
answered. Calls go through Agno model classes picked from the model string
prefix (`groq/...`, `openai/...`, `anthropic/...`, `openrouter/...`);
`mock/...` models answer locally. Each attempt is bounded by the configured
timeout and a failing model hands over to the next one in the fallback list.
"""

from __future__ import annotations

import asyncio
import importlib
import time
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from retainer.infrastructure.providers.llm.base import (
    LLMMessage,
    LLMResponse,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TokenUsage,
)
from retainer.observability.logging import get_logger

if TYPE_CHECKING:
    from retainer.config.models.providers import LLMProviderConfig

logger = get_logger(__name__)

# prefix -> (agno module, model class)
AGNO_MODELS: dict[str, tuple[str, str]] = {
    "openrouter": ("agno.models.openrouter", "OpenRouter"),
    "anthropic": ("agno.models.anthropic", "Claude"),
    "openai": ("agno.models.openai", "OpenAIChat"),
    "groq": ("agno.models.groq", "Groq"),
}


@dataclass
class ExecutionContext:
    """Account, agent and subscriber an event is being handled for."""

    user_id: str
    agent_type: str
    subscriber_id: str | None = None


_current: ContextVar[ExecutionContext | None] = ContextVar("retainer_execution", default=None)


def set_execution_context(ctx: ExecutionContext) -> None:
    """Attach ctx to the running task and to its log lines."""
    _current.set(ctx)
    structlog.contextvars.bind_contextvars(
        user_id=ctx.user_id,
        agent_type=ctx.agent_type,
        subscriber_id=ctx.subscriber_id,
    )


def get_execution_context() -> ExecutionContext | None:
    return _current.get()


def clear_execution_context() -> None:
    _current.set(None)
    structlog.contextvars.unbind_contextvars("user_id", "agent_type", "subscriber_id")


class LLMExecutor:
    """Run prompts against a primary model with ordered fallbacks.

    Example:
        executor = LLMExecutor(
            model="groq/llama-3.3-70b-versatile",
            fallback_models=["openai/gpt-4o-mini"],
            timeout=30.0,
        )
        response = await executor.generate(
            [LLMMessage(role="user", content="...")],
            step="option_generation",
        )
    """

    def __init__(
        self,
        model: str,
        fallback_models: list[str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._chain = [model, *(fallback_models or [])]
        self._timeout = timeout
        self._agno_models: dict[tuple[str, float, int], Any] = {}

    @property
    def model(self) -> str:
        return self._chain[0]

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def is_mock(self) -> bool:
        """Whether the primary model answers locally."""
        return self._parse_model(self.model)[0] == "mock"

    async def generate(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        step: str | None = None,
    ) -> LLMResponse:
        """Answer messages with the first model of the chain that succeeds.

        Raises:
            ProviderTimeoutError: The last attempt ran out of time
            ProviderError: Every model in the chain failed
        """
        failure: Exception | None = None

        for model in self._chain:
            try:
                response = await asyncio.wait_for(
                    self._generate_with_model(
                        model=model,
                        messages=messages,
                        max_tokens=max_tokens,
                        temperature=temperature,
                    ),
                    timeout=self._timeout,
                )
            except TimeoutError as e:
                failure = ProviderTimeoutError(f"{model} gave no answer within {self._timeout}s")
                failure.__cause__ = e
            except ProviderError as e:
                failure = e
            else:
                return self._tag(response, step)

            logger.warning(
                "llm_attempt_failed",
                model=model,
                step=step,
                rate_limited=isinstance(failure, RateLimitError),
                error=str(failure),
            )

        if isinstance(failure, ProviderTimeoutError):
            raise failure
        raise ProviderError(
            f"All models failed for step {step} ({', '.join(self._chain)}): {failure}"
        ) from failure

    def _tag(self, response: LLMResponse, step: str | None) -> LLMResponse:
        response.metadata["step"] = step
        ctx = get_execution_context()
        if ctx is not None:
            response.metadata["user_id"] = ctx.user_id
            response.metadata["agent_type"] = ctx.agent_type
        return response

    async def _generate_with_model(
        self,
        model: str,
        messages: list[LLMMessage],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        provider, _ = self._parse_model(model)
        if provider == "mock":
            return LLMResponse(
                content=f"Mock response for {model}",
                model=model,
                finish_reason="stop",
                usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
            )

        from agno.agent import Agent

        instructions = [m.content for m in messages if m.role == "system"]
        # New Agent per call so concurrent events never share instructions
        agent = Agent(
            model=self._agno_model(model, temperature, max_tokens),
            instructions=instructions or None,
            markdown=False,
        )

        started = time.perf_counter()
        try:
            run = await agent.arun(self._conversation(messages))
        except Exception as e:
            text = str(e).lower()
            if "rate" in text and "limit" in text:
                raise RateLimitError(f"{model} rate limited: {e}") from e
            raise ProviderError(f"{model} failed: {e}") from e
        latency_ms = (time.perf_counter() - started) * 1000

        content = str(run.content or "")
        logger.debug("llm_answered", model=model, latency_ms=round(latency_ms, 2))
        return LLMResponse(
            content=content,
            model=model,
            finish_reason="stop",
            metadata={"latency_ms": latency_ms, "provider": provider},
        )

    def _agno_model(self, model: str, temperature: float, max_tokens: int) -> Any:
        key = (model, temperature, max_tokens)
        if key not in self._agno_models:
            provider, api_model = self._parse_model(model)
            if provider not in AGNO_MODELS:
                logger.warning("unknown_llm_prefix", model=model, provider=provider)
                provider, api_model = "openrouter", model
            module_name, class_name = AGNO_MODELS[provider]
            model_cls = getattr(importlib.import_module(module_name), class_name)
            self._agno_models[key] = model_cls(
                id=api_model, temperature=temperature, max_tokens=max_tokens
            )
        return self._agno_models[key]

    @staticmethod
    def _conversation(messages: list[LLMMessage]) -> str:
        """Flatten non-system messages into the single input Agno expects."""
        turns = [m for m in messages if m.role != "system"]
        if len(turns) == 1:
            return turns[0].content
        return "\n\n".join(f"{m.role.capitalize()}: {m.content}" for m in turns)

    @staticmethod
    def _parse_model(model: str) -> tuple[str, str]:
        """Split "prefix/api-model"; bare names are treated as mock."""
        prefix, sep, rest = model.partition("/")
        if not sep:
            return "mock", model
        return prefix, rest


def create_executor(config: LLMProviderConfig) -> LLMExecutor:
    """Build the executor described by `providers.llm`."""
    return LLMExecutor(
        model=config.model,
        fallback_models=config.fallback_models,
        timeout=config.timeout,
    )
