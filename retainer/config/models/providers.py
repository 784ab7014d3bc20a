"""Generative and embedding backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr

EmbeddingProviderType = Literal["auto", "openai", "feature", "hash"]


class LLMProviderConfig(BaseModel):
    """Configuration for the generative text backend."""

    model: str = Field(
        default="groq/llama-3.3-70b-versatile",
        description="Model string, prefixed by provider (groq/, openai/, anthropic/, mock/)",
    )
    fallback_models: list[str] = Field(
        default_factory=list,
        description="Models tried in order when the primary model fails",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Hard per-call timeout in seconds",
    )


class EmbeddingProviderConfig(BaseModel):
    """Configuration for the embedding backend.

    `auto` resolves once at startup: OpenAI when OPENAI_API_KEY is set,
    LLM feature extraction when a real generative model is configured,
    otherwise the deterministic hash embedding.
    """

    provider: EmbeddingProviderType = Field(default="auto", description="Provider type")
    model: str = Field(default="text-embedding-3-small", description="Model identifier")
    api_key: SecretStr | None = Field(default=None, description="API key (prefer env var)")
    dimensions: int = Field(default=1536, gt=0, description="Embedding dimensions")
    max_input_chars: int = Field(
        default=8000, gt=0, description="Input text is truncated to this many characters"
    )
    feature_count: int = Field(
        default=20, gt=0, description="Number of semantic scores requested in feature mode"
    )


class ProvidersConfig(BaseModel):
    """Configuration for external AI backends."""

    llm: LLMProviderConfig = Field(default_factory=LLMProviderConfig)
    embedding: EmbeddingProviderConfig = Field(default_factory=EmbeddingProviderConfig)
