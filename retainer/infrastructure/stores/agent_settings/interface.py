"""AgentSettingsStore abstract interface."""

from abc import ABC, abstractmethod

from retainer.domain.agent_config import AgentConfig, BrandSettings


class AgentSettingsStore(ABC):
    """Per-account agent configuration and brand voice."""

    @abstractmethod
    async def get_agent_config(self, user_id: str, agent_type: str) -> AgentConfig | None:
        """Get the stored config for an agent, if any."""
        pass

    @abstractmethod
    async def get_brand_settings(self, user_id: str) -> BrandSettings | None:
        """Get the stored brand settings for an account, if any."""
        pass
