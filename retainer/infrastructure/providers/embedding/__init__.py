"""Embedding providers for text vectorization."""

from retainer.infrastructure.providers.embedding.base import EmbeddingProvider, EmbeddingResponse
from retainer.infrastructure.providers.embedding.factory import (
    create_embedding_provider,
    resolve_provider_type,
)
from retainer.infrastructure.providers.embedding.feature import (
    FeatureEmbeddingProvider,
    expand_scores,
)
from retainer.infrastructure.providers.embedding.hashing import HashEmbeddingProvider
from retainer.infrastructure.providers.embedding.openai import OpenAIEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "EmbeddingResponse",
    "FeatureEmbeddingProvider",
    "HashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
    "expand_scores",
    "resolve_provider_type",
]
