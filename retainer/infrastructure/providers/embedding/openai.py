"""Embeddings from the OpenAI API."""

import os
from typing import Any

from openai import AsyncOpenAI

from retainer.infrastructure.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingResponse,
)
from retainer.observability.logging import get_logger
from retainer.utils.vector import normalize

logger = get_logger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Remote embeddings, used when `providers.embedding.provider = "openai"`.

    Inputs are truncated to `max_input_chars` before the request and the
    returned vectors are re-normalized to unit length.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        max_input_chars: int = 8000,
        timeout: float = 30.0,
    ):
        """api_key defaults to OPENAI_API_KEY.

        Raises:
            ValueError: Neither api_key nor OPENAI_API_KEY is set
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")

        self._model = model
        self._dimensions = dimensions
        self._max_input_chars = max_input_chars
        self._client = AsyncOpenAI(api_key=self._api_key, timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, texts: list[str]) -> EmbeddingResponse:
        logger.debug("openai_embed_request", model=self._model, num_texts=len(texts))

        api_kwargs: dict[str, Any] = {
            "input": [text[: self._max_input_chars] for text in texts],
            "model": self._model,
        }
        # Only text-embedding-3-* models accept a dimensions parameter
        if self._model.startswith("text-embedding-3-"):
            api_kwargs["dimensions"] = self._dimensions

        try:
            response = await self._client.embeddings.create(**api_kwargs)
        except Exception as e:
            logger.error("openai_embed_failed", model=self._model, error=str(e))
            raise RuntimeError(f"OpenAI embedding request failed: {e}") from e

        embeddings = [normalize(item.embedding) for item in response.data]

        usage = response.usage
        return EmbeddingResponse(
            embeddings=embeddings,
            model=self._model,
            dimensions=self._dimensions,
            usage=(
                {"total_tokens": usage.total_tokens, "prompt_tokens": usage.prompt_tokens}
                if usage
                else None
            ),
        )

    async def close(self) -> None:
        await self._client.close()
