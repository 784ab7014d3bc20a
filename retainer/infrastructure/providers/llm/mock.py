"""Scripted generative backend for tests and offline runs."""

import asyncio
import json
from typing import Any

from retainer.infrastructure.providers.llm.base import (
    LLMMessage,
    LLMResponse,
    TokenUsage,
)


class MockLLMProvider:
    """Answers without any network call.

    Responses can be scripted per call site (the `step` passed to
    generate) or per last-message content; errors and delays can be
    injected the same way to exercise fallback paths.
    """

    def __init__(
        self,
        default_response: str = "Mock response",
        default_model: str = "mock-model",
        responses: dict[str, str | dict[str, Any] | list[Any]] | None = None,
        errors: dict[str, Exception] | None = None,
        delays: dict[str, float] | None = None,
    ):
        """Build a provider that answers default_response unless scripted.

        Args:
            responses: Keyed by step or by last message content; dicts and
                lists are sent back as JSON
            errors: Keyed by step, raised instead of answering
            delays: Keyed by step, seconds slept before answering
        """
        self._default_response = default_response
        self._default_model = default_model
        self._responses = dict(responses or {})
        self._errors = dict(errors or {})
        self._delays = dict(delays or {})
        self._call_history: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def call_history(self) -> list[dict[str, Any]]:
        return self._call_history

    def calls_for(self, step: str) -> list[dict[str, Any]]:
        return [call for call in self._call_history if call["step"] == step]

    def clear_history(self) -> None:
        self._call_history.clear()

    def set_response(self, trigger: str, response: str | dict[str, Any] | list[Any]) -> None:
        self._responses[trigger] = response

    def set_error(self, step: str, error: Exception) -> None:
        self._errors[step] = error

    def set_delay(self, step: str, seconds: float) -> None:
        self._delays[step] = seconds

    async def generate(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        step: str | None = None,
    ) -> LLMResponse:
        self._call_history.append({
            "messages": messages,
            "model": self._default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "step": step,
        })

        if step is not None and step in self._delays:
            await asyncio.sleep(self._delays[step])

        if step is not None and step in self._errors:
            raise self._errors[step]

        content = self._resolve_content(messages, step)

        prompt_tokens = sum(len(m.content) // 4 for m in messages)
        completion_tokens = len(content) // 4
        return LLMResponse(
            content=content,
            model=self._default_model,
            finish_reason="stop",
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            metadata={"step": step},
        )

    def _resolve_content(self, messages: list[LLMMessage], step: str | None) -> str:
        response: str | dict[str, Any] | list[Any] = self._default_response
        if step is not None and step in self._responses:
            response = self._responses[step]
        elif messages and messages[-1].content in self._responses:
            response = self._responses[messages[-1].content]

        if isinstance(response, str):
            return response
        return json.dumps(response)
