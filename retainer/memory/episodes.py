"""Agent-facing episode access: recording, similarity recall and resolution."""

from collections.abc import Callable
from datetime import UTC, datetime
from uuid import UUID

from retainer.domain.enums import Outcome
from retainer.domain.episode import ActionTaken, Episode, EpisodeResolution
from retainer.domain.situation import Situation
from retainer.infrastructure.providers.embedding.base import EmbeddingProvider
from retainer.infrastructure.providers.embedding.hashing import HashEmbeddingProvider
from retainer.infrastructure.stores.episode.interface import EpisodeStore
from retainer.observability.logging import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class EpisodeRecorder:
    """Episodes for one agent of one account."""

    def __init__(
        self,
        user_id: str,
        agent_type: str,
        store: EpisodeStore,
        embeddings: EmbeddingProvider,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_id = user_id
        self._agent_type = agent_type
        self._store = store
        self._embeddings = embeddings
        self._clock = clock

    async def embed_situation(self, situation: Situation) -> list[float]:
        """Embed the search description of a situation."""
        return await self._embeddings.embed_single(situation.describe_for_search())

    async def embed_for_record(self, situation: Situation) -> list[float]:
        """Embedding stored with a new episode.

        A backend failure falls back to the hash vector of the same width so
        the episode is still recorded; such episodes only match identical
        situations in later searches.
        """
        text = situation.describe_for_search()
        try:
            return await self._embeddings.embed_single(text)
        except Exception as e:
            logger.warning("situation_embedding_failed", error=str(e), fallback="hash")
            return HashEmbeddingProvider(dimensions=self._embeddings.dimensions).embed_text(text)

    async def record(
        self,
        situation: Situation,
        action_taken: ActionTaken,
        *,
        situation_embedding: list[float] | None = None,
    ) -> Episode:
        """Open a pending episode for an action just taken."""
        if situation_embedding is None:
            situation_embedding = await self.embed_for_record(situation)

        episode = Episode(
            user_id=self._user_id,
            agent_type=self._agent_type,
            subscriber_id=situation.subscriber.id,
            situation=situation,
            action_taken=action_taken,
            situation_embedding=situation_embedding,
            created_at=self._clock(),
        )
        await self._store.add_episode(episode)

        logger.debug(
            "episode_recorded",
            episode_id=str(episode.id),
            trigger=situation.trigger,
            action=action_taken.key,
        )
        return episode

    async def find_similar(
        self,
        situation: Situation,
        limit: int = 15,
        threshold: float = 0.5,
    ) -> list[tuple[Episode, float]]:
        """Past episodes for this agent similar to a situation.

        An embedding failure yields no matches.
        """
        try:
            embedding = await self.embed_situation(situation)
        except Exception as e:
            logger.warning("episode_search_embedding_failed", error=str(e))
            return []

        return await self._store.vector_search_episodes(
            embedding,
            self._user_id,
            self._agent_type,
            limit=limit,
            min_score=threshold,
        )

    async def get(self, episode_id: UUID) -> Episode | None:
        """Get an episode of this agent by ID."""
        episode = await self._store.get_episode(episode_id)
        if episode and episode.user_id == self._user_id and episode.agent_type == self._agent_type:
            return episode
        return None

    async def latest_pending(self, subscriber_id: str) -> Episode | None:
        """Most recent pending episode for a subscriber."""
        episodes = await self._store.list_episodes(
            self._user_id,
            self._agent_type,
            subscriber_id=subscriber_id,
            outcome=Outcome.PENDING,
            limit=1,
        )
        return episodes[0] if episodes else None

    async def list_recent(self, limit: int = 100, resolved_only: bool = False) -> list[Episode]:
        """Episodes of this agent, newest first."""
        return await self._store.list_episodes(
            self._user_id, self._agent_type, resolved_only=resolved_only, limit=limit
        )

    async def count(self, outcome: Outcome | None = None) -> int:
        """Number of episodes of this agent, optionally by outcome."""
        return await self._store.count_episodes(self._user_id, self._agent_type, outcome=outcome)

    async def resolve(self, episode_id: UUID, resolution: EpisodeResolution) -> Episode | None:
        """Resolve a pending episode. Returns None if it was already resolved."""
        return await self._store.resolve_if_pending(episode_id, resolution)
