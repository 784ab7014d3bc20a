"""In-memory implementation of AgentSettingsStore."""

from retainer.domain.agent_config import AgentConfig, BrandSettings
from retainer.infrastructure.stores.agent_settings.interface import AgentSettingsStore


class InMemoryAgentSettingsStore(AgentSettingsStore):
    """In-memory implementation of AgentSettingsStore for testing and development."""

    def __init__(self) -> None:
        self._configs: dict[tuple[str, str], AgentConfig] = {}
        self._brands: dict[str, BrandSettings] = {}

    def save_agent_config(self, config: AgentConfig) -> None:
        """Store config for (user, agent type)."""
        self._configs[(config.user_id, config.agent_type)] = config

    def save_brand_settings(self, settings: BrandSettings) -> None:
        """Store brand settings for an account."""
        self._brands[settings.user_id] = settings

    async def get_agent_config(self, user_id: str, agent_type: str) -> AgentConfig | None:
        """Get the stored config for an agent, if any."""
        return self._configs.get((user_id, agent_type))

    async def get_brand_settings(self, user_id: str) -> BrandSettings | None:
        """Get the stored brand settings for an account, if any."""
        return self._brands.get(user_id)
