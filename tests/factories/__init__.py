"""Test factories for creating test data."""

from tests.factories.agents import (
    AgentConfigFactory,
    ResponseFactory,
    SituationFactory,
    SubscriberFactory,
)
from tests.factories.memory import EpisodeFactory, MemoryFactory

__all__ = [
    "AgentConfigFactory",
    "EpisodeFactory",
    "MemoryFactory",
    "ResponseFactory",
    "SituationFactory",
    "SubscriberFactory",
]
