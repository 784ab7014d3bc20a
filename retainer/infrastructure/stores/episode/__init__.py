"""EpisodeStore for recorded decisions and their outcomes."""

from retainer.infrastructure.stores.episode.inmemory import InMemoryEpisodeStore
from retainer.infrastructure.stores.episode.interface import EpisodeStore

__all__ = [
    "EpisodeStore",
    "InMemoryEpisodeStore",
]
