"""Contract shared by every embedding backend."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class EmbeddingResponse(BaseModel):
    embeddings: list[list[float]]
    model: str
    dimensions: int
    usage: dict[str, int] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmbeddingProvider(ABC):
    """Turns text into unit vectors of a fixed width.

    Vectors from one provider are only ever compared with vectors from the
    same provider, so `dimensions` must stay constant for its lifetime.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    @abstractmethod
    def dimensions(self) -> int: ...

    @abstractmethod
    async def embed(self, texts: list[str]) -> EmbeddingResponse:
        """One L2-normalized vector per input text, in input order."""

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text])).embeddings[0]
