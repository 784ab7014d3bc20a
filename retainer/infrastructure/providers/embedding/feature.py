"""Embedding provider built on generative feature extraction.

The generative backend scores the text on a small set of semantic
dimensions; the score vector is tiled up to the target dimensions with a
deterministic perturbation, then normalized. Calls that fail or return
an unusable answer fall back to the hash embedding for that text.
"""

import asyncio
import math

from retainer.infrastructure.providers.embedding.base import (
    EmbeddingProvider,
    EmbeddingResponse,
)
from retainer.infrastructure.providers.embedding.hashing import HashEmbeddingProvider
from retainer.infrastructure.providers.llm.base import LLMClient, LLMMessage, ProviderError
from retainer.observability.logging import get_logger
from retainer.utils.llm_json import extract_json_object
from retainer.utils.vector import normalize

logger = get_logger(__name__)

FEATURE_DIMENSIONS = [
    "urgency",
    "sentiment_positive",
    "sentiment_negative",
    "formality",
    "complexity",
    "action_required",
    "financial_topic",
    "technical_topic",
    "relationship_topic",
    "problem_mentioned",
    "solution_offered",
    "gratitude_expressed",
    "frustration_expressed",
    "question_asked",
    "information_shared",
    "request_made",
    "deadline_mentioned",
    "personal_tone",
    "professional_tone",
    "emotional_intensity",
]

_MAX_PROMPT_CHARS = 2000


def expand_scores(scores: list[float], dimensions: int) -> list[float]:
    """Tile a short score vector to `dimensions` values and normalize it.

    Position i takes scores[i % n] plus 0.1 * sin(0.1 * i), clamped to [0, 1].
    """
    base = scores or [0.5]
    expanded = [
        max(0.0, min(1.0, base[i % len(base)] + math.sin(i * 0.1) * 0.1))
        for i in range(dimensions)
    ]
    return normalize(expanded)


class FeatureEmbeddingProvider(EmbeddingProvider):
    """Embedding provider that asks the generative backend for feature scores."""

    def __init__(
        self,
        llm: LLMClient,
        dimensions: int = 1536,
        feature_count: int = 20,
        timeout: float = 30.0,
    ):
        """Initialize feature provider.

        Args:
            llm: Generative backend used for feature extraction
            dimensions: Output embedding dimensions
            feature_count: Number of semantic scores requested
            timeout: Hard timeout for each extraction call
        """
        self._llm = llm
        self._dimensions = dimensions
        self._features = FEATURE_DIMENSIONS[:feature_count]
        self._timeout = timeout
        self._hash = HashEmbeddingProvider(dimensions=dimensions)

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "feature"

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions."""
        return self._dimensions

    def _system_prompt(self) -> str:
        listed = "\n".join(f"{i}. {name}" for i, name in enumerate(self._features, 1))
        return (
            "You are a feature extraction system. Analyze the text and give a score "
            f"between 0 and 1 for each of these {len(self._features)} dimensions:\n"
            f"{listed}\n\n"
            'Reply ONLY with JSON: {"scores": [0.5, 0.3, ...]} '
            f"({len(self._features)} values)"
        )

    async def _extract_scores(self, text: str) -> list[float] | None:
        messages = [
            LLMMessage(role="system", content=self._system_prompt()),
            LLMMessage(role="user", content=text[:_MAX_PROMPT_CHARS]),
        ]
        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    messages, max_tokens=200, temperature=0.1, step="feature_embedding"
                ),
                timeout=self._timeout,
            )
        except (ProviderError, TimeoutError) as e:
            logger.warning("feature_embedding_failed", error=str(e))
            return None

        parsed = extract_json_object(response.content)
        raw_scores = parsed.get("scores") if parsed else None
        if not isinstance(raw_scores, list):
            logger.warning("feature_embedding_unparsable", content_preview=response.content[:200])
            return None

        scores = [
            float(s) for s in raw_scores if isinstance(s, int | float) and not isinstance(s, bool)
        ]
        return scores or None

    async def embed(self, texts: list[str]) -> EmbeddingResponse:
        """Generate feature embeddings, falling back to hash per text."""
        embeddings: list[list[float]] = []
        fallbacks = 0
        for text in texts:
            scores = await self._extract_scores(text)
            if scores is None:
                fallbacks += 1
                embeddings.append(self._hash.embed_text(text))
            else:
                embeddings.append(expand_scores(scores, self._dimensions))

        return EmbeddingResponse(
            embeddings=embeddings,
            model="llm-features",
            dimensions=self._dimensions,
            metadata={"hash_fallbacks": fallbacks},
        )
