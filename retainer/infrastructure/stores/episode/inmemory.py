"""Dict-backed EpisodeStore."""

import asyncio
from uuid import UUID

from retainer.domain.enums import Outcome
from retainer.domain.episode import Episode, EpisodeResolution
from retainer.infrastructure.stores.episode.interface import EpisodeStore
from retainer.utils.vector import cosine_similarity


class InMemoryEpisodeStore(EpisodeStore):
    """Dict-backed EpisodeStore for tests and single-process runs.

    resolve_if_pending runs under a lock, so one of two racing resolutions
    wins and the other sees None.
    """

    def __init__(self) -> None:
        self._episodes: dict[UUID, Episode] = {}
        self._lock = asyncio.Lock()

    async def add_episode(self, episode: Episode) -> UUID:
        """Store a new episode under its id."""
        self._episodes[episode.id] = episode
        return episode.id

    async def get_episode(self, episode_id: UUID) -> Episode | None:
        return self._episodes.get(episode_id)

    async def list_episodes(
        self,
        user_id: str,
        agent_type: str,
        *,
        subscriber_id: str | None = None,
        outcome: Outcome | None = None,
        resolved_only: bool = False,
        limit: int = 100,
    ) -> list[Episode]:
        """List episodes for an owner, newest first."""
        results = [
            ep
            for ep in self._episodes.values()
            if ep.user_id == user_id
            and ep.agent_type == agent_type
            and (subscriber_id is None or ep.subscriber_id == subscriber_id)
            and (outcome is None or ep.outcome == outcome)
            and (not resolved_only or ep.is_resolved)
        ]
        results.sort(key=lambda x: x.created_at, reverse=True)
        return results[:limit]

    async def vector_search_episodes(
        self,
        query_embedding: list[float],
        user_id: str,
        agent_type: str,
        *,
        limit: int = 10,
        min_score: float = 0.0,
    ) -> list[tuple[Episode, float]]:
        """Cosine search over one agent's situation embeddings, best first."""
        results: list[tuple[Episode, float]] = []

        for episode in self._episodes.values():
            if episode.user_id != user_id or episode.agent_type != agent_type:
                continue
            if len(episode.situation_embedding) != len(query_embedding):
                continue

            score = cosine_similarity(query_embedding, episode.situation_embedding)
            if score >= min_score:
                results.append((episode, score))

        results.sort(key=lambda x: x[1], reverse=True)
        return results[:limit]

    async def count_episodes(
        self, user_id: str, agent_type: str, *, outcome: Outcome | None = None
    ) -> int:
        """Count episodes for an owner, optionally by outcome."""
        return sum(
            1
            for ep in self._episodes.values()
            if ep.user_id == user_id
            and ep.agent_type == agent_type
            and (outcome is None or ep.outcome == outcome)
        )

    async def resolve_if_pending(
        self, episode_id: UUID, resolution: EpisodeResolution
    ) -> Episode | None:
        """Apply a resolution only if the episode is still pending."""
        async with self._lock:
            episode = self._episodes.get(episode_id)
            if episode is None or episode.is_resolved:
                return None
            episode.outcome = resolution.outcome
            episode.outcome_details = resolution.outcome_details
            episode.lessons_learned = resolution.lessons_learned
            episode.resolved_at = resolution.resolved_at
            return episode
