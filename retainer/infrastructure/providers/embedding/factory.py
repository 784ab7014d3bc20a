"""Select the embedding backend once, at startup."""

import os

from retainer.config.models.providers import EmbeddingProviderConfig, EmbeddingProviderType
from retainer.infrastructure.providers.embedding.base import EmbeddingProvider
from retainer.infrastructure.providers.embedding.feature import FeatureEmbeddingProvider
from retainer.infrastructure.providers.embedding.hashing import HashEmbeddingProvider
from retainer.infrastructure.providers.embedding.openai import OpenAIEmbeddingProvider
from retainer.infrastructure.providers.llm.base import LLMClient
from retainer.observability.logging import get_logger

logger = get_logger(__name__)


def resolve_provider_type(
    config: EmbeddingProviderConfig,
    llm_available: bool,
) -> EmbeddingProviderType:
    """Resolve `auto` to a concrete provider type.

    OpenAI when an API key is configured, LLM features when a real
    generative backend is available, otherwise hash.
    """
    if config.provider != "auto":
        return config.provider

    if config.api_key is not None or os.environ.get("OPENAI_API_KEY"):
        return "openai"
    if llm_available:
        return "feature"
    return "hash"


def create_embedding_provider(
    config: EmbeddingProviderConfig,
    llm: LLMClient | None = None,
    *,
    llm_available: bool | None = None,
    timeout: float = 30.0,
) -> EmbeddingProvider:
    """Create the embedding provider described by config.

    Args:
        config: Embedding provider configuration
        llm: Generative backend, required for the feature provider
        llm_available: Whether `llm` talks to a real model; defaults to
            `llm is not None`
        timeout: Timeout for backend calls

    Returns:
        The provider every store and engine will share
    """
    if llm_available is None:
        llm_available = llm is not None

    provider_type = resolve_provider_type(config, llm_available)

    if provider_type == "openai":
        provider: EmbeddingProvider = OpenAIEmbeddingProvider(
            api_key=config.api_key.get_secret_value() if config.api_key else None,
            model=config.model,
            dimensions=config.dimensions,
            max_input_chars=config.max_input_chars,
            timeout=timeout,
        )
    elif provider_type == "feature":
        if llm is None:
            raise ValueError("Feature embeddings require a generative backend")
        provider = FeatureEmbeddingProvider(
            llm,
            dimensions=config.dimensions,
            feature_count=config.feature_count,
            timeout=timeout,
        )
    else:
        provider = HashEmbeddingProvider(dimensions=config.dimensions)

    logger.info(
        "embedding_provider_selected",
        provider=provider.provider_name,
        configured=config.provider,
        dimensions=provider.dimensions,
    )
    return provider
