"""AgentSettingsStore for per-agent config and brand settings."""

from retainer.infrastructure.stores.agent_settings.inmemory import InMemoryAgentSettingsStore
from retainer.infrastructure.stores.agent_settings.interface import AgentSettingsStore

__all__ = [
    "AgentSettingsStore",
    "InMemoryAgentSettingsStore",
]
