"""Configuration section models."""

from retainer.config.models.agents import AgentsConfig
from retainer.config.models.learning import LearningConfig
from retainer.config.models.observability import ObservabilityConfig
from retainer.config.models.providers import (
    EmbeddingProviderConfig,
    LLMProviderConfig,
    ProvidersConfig,
)
from retainer.config.models.reasoning import ReasoningConfig

__all__ = [
    "AgentsConfig",
    "EmbeddingProviderConfig",
    "LearningConfig",
    "LLMProviderConfig",
    "ObservabilityConfig",
    "ProvidersConfig",
    "ReasoningConfig",
]
