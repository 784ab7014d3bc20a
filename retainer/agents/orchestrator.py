"""Routes events to the agent that declares their trigger."""

from collections.abc import Callable

from pydantic import BaseModel

from retainer.agents.capabilities import agent_type_for_trigger
from retainer.agents.core import AgentCore
from retainer.domain.actions import AgentActionResult
from retainer.domain.enums import AgentType
from retainer.domain.situation import AgentEvent
from retainer.observability.logging import get_logger

logger = get_logger(__name__)

AgentFactory = Callable[[str, AgentType], AgentCore]


class OrchestratorResult(BaseModel):
    """Outcome of routing one event."""

    handled: bool
    agent_type: AgentType | None = None
    result: AgentActionResult | None = None
    error: str | None = None


class AgentOrchestrator:
    """Per-account router; agents are built on first use and reused."""

    def __init__(self, user_id: str, agent_factory: AgentFactory) -> None:
        self._user_id = user_id
        self._agent_factory = agent_factory
        self._agents: dict[AgentType, AgentCore] = {}

    def get_agent(self, agent_type: AgentType) -> AgentCore:
        if agent_type not in self._agents:
            self._agents[agent_type] = self._agent_factory(self._user_id, agent_type)
        return self._agents[agent_type]

    async def handle_event(self, event: AgentEvent) -> OrchestratorResult:
        """Route an event. Errors are reported in the result, not raised."""
        agent_type = agent_type_for_trigger(event.type)
        if agent_type is None:
            return OrchestratorResult(
                handled=False, error=f"No agent found for event type: {event.type}"
            )

        try:
            result = await self.get_agent(agent_type).handle_event(event)
        except Exception as e:
            logger.error(
                "orchestrator_event_failed",
                event_type=event.type,
                agent_type=agent_type.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return OrchestratorResult(handled=False, agent_type=agent_type, error=str(e))

        return OrchestratorResult(handled=True, agent_type=agent_type, result=result)
