"""Deterministic hash-based embedding provider.

Needs no network access: the same text always yields the same vector.
Used as the last-resort backend and in tests. Similar texts do NOT get
similar vectors.
"""

import hashlib
import struct

from retainer.infrastructure.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingResponse,
)
from retainer.utils.vector import normalize

_UINT32_MAX = 0xFFFFFFFF
_VALUES_PER_DIGEST = 8


class HashEmbeddingProvider(EmbeddingProvider):
    """Embedding provider that derives vectors from SHA-256 digests."""

    def __init__(self, dimensions: int = 1536, model: str = "sha256-hash"):
        """Initialize hash provider.

        Args:
            dimensions: Embedding vector dimensions
            model: Model name to report
        """
        self._dimensions = dimensions
        self._model = model

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "hash"

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self._dimensions

    def embed_text(self, text: str) -> list[float]:
        """Generate the deterministic vector for one text.

        Each block of eight dimensions comes from sha256(f"{block}:{text}"),
        read as unsigned 32-bit integers and mapped to [-1, 1].
        """
        values: list[float] = []
        block = 0
        while len(values) < self._dimensions:
            digest = hashlib.sha256(f"{block}:{text}".encode()).digest()
            for raw in struct.unpack(">8I", digest):
                values.append((raw / _UINT32_MAX) * 2.0 - 1.0)
            block += 1

        return normalize(values[: self._dimensions])

    async def embed(self, texts: list[str]) -> EmbeddingResponse:
        """Generate hash embeddings."""
        return EmbeddingResponse(
            embeddings=[self.embed_text(text) for text in texts],
            model=self._model,
            dimensions=self._dimensions,
        )
