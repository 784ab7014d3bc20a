"""EpisodeStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from retainer.domain.enums import Outcome
from retainer.domain.episode import Episode, EpisodeResolution


class EpisodeStore(ABC):
    """Abstract interface for episode storage.

    Resolution is a one-way pending -> terminal transition enforced by
    resolve_if_pending.
    """

    @abstractmethod
    async def add_episode(self, episode: Episode) -> UUID:
        """Add an episode to the store."""
        pass

    @abstractmethod
    async def get_episode(self, episode_id: UUID) -> Episode | None:
        """Get an episode by ID."""
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def vector_search_episodes(
        self,
        query_embedding: list[float],
        user_id: str,
        agent_type: str,
        *,
        limit: int = 10,
        min_score: float = 0.0,
    ) -> list[tuple[Episode, float]]:
        """Search episodes by situation-embedding similarity."""
        pass

    @abstractmethod
    async def count_episodes(
        self, user_id: str, agent_type: str, *, outcome: Outcome | None = None
    ) -> int:
        """Count episodes for an owner, optionally by outcome."""
        pass

    @abstractmethod
    async def resolve_if_pending(
        self, episode_id: UUID, resolution: EpisodeResolution
    ) -> Episode | None:
        """Apply a resolution only if the episode is still pending.

        Returns the resolved episode, or None if it was missing or
        already resolved.
        """
        pass
