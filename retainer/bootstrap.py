"""Bootstrap module for wiring the agent loop from config.

Builds the shared pieces once (generative backend, embedding provider,
stores, subscriber mutex) and hands out AgentCore instances per
(account, agent type). Handles:
- Loading configuration and setting up logging
- Creating the generative executor and selecting the embedding backend
- Creating in-memory stores unless real ones are passed in

Example usage:

    from retainer.bootstrap import bootstrap

    ctx = bootstrap()
    orchestrator = ctx.orchestrator("acct_1")

    result = await orchestrator.handle_event(
        payment_failed_event("sub_1", invoice_id="in_1", amount=7900)
    )
"""

from dataclasses import dataclass, field

from retainer.agents.capabilities import capability_for
from retainer.agents.core import AgentCore
from retainer.agents.executors import ActionExecutor, LoggingActionExecutor
from retainer.agents.mutex import SubscriberMutex
from retainer.agents.orchestrator import AgentOrchestrator
from retainer.config import Settings, get_settings
from retainer.domain.enums import AgentType
from retainer.infrastructure.providers.embedding import EmbeddingProvider, create_embedding_provider
from retainer.infrastructure.providers.llm import LLMClient, create_executor
from retainer.infrastructure.stores.action import ActionStore, InMemoryActionStore
from retainer.infrastructure.stores.agent_settings import (
    AgentSettingsStore,
    InMemoryAgentSettingsStore,
)
from retainer.infrastructure.stores.episode import EpisodeStore, InMemoryEpisodeStore
from retainer.infrastructure.stores.memory import InMemoryMemoryStore, MemoryStore
from retainer.infrastructure.stores.subscriber import (
    InMemorySubscriberDirectory,
    SubscriberDirectory,
)
from retainer.learning.engine import LearningEngine
from retainer.memory.agent_memory import AgentMemory
from retainer.memory.episodes import EpisodeRecorder
from retainer.memory.short_term import ShortTermMemory
from retainer.observability.logging import get_logger, setup_logging
from retainer.reasoning.engine import ReasoningEngine
from retainer.utils.locks import KeyedMutex

logger = get_logger(__name__)


@dataclass
class RetainerContext:
    """Shared providers and stores, plus factories for agents."""

    settings: Settings
    llm: LLMClient
    embeddings: EmbeddingProvider
    memory_store: MemoryStore
    episode_store: EpisodeStore
    action_store: ActionStore
    subscribers: SubscriberDirectory
    settings_store: AgentSettingsStore
    executor: ActionExecutor
    mutex: SubscriberMutex | None = None
    pattern_locks: KeyedMutex = field(default_factory=KeyedMutex)
    _orchestrators: dict[str, AgentOrchestrator] = field(default_factory=dict)

    def create_agent(self, user_id: str, agent_type: AgentType | str) -> AgentCore:
        """Build an AgentCore for one agent type of one account."""
        capability = capability_for(agent_type)
        agent_type_value = capability.agent_type.value

        memory = AgentMemory(user_id, agent_type_value, self.memory_store, self.embeddings)
        episodes = EpisodeRecorder(user_id, agent_type_value, self.episode_store, self.embeddings)
        reasoning = ReasoningEngine(
            agent_type_value, memory, episodes, self.llm, self.settings.reasoning
        )
        learning = LearningEngine(
            user_id,
            agent_type_value,
            memory,
            episodes,
            self.action_store,
            self.llm,
            self.settings.learning,
            pattern_locks=self.pattern_locks,
        )
        return AgentCore(
            user_id,
            capability,
            reasoning=reasoning,
            learning=learning,
            episodes=episodes,
            actions=self.action_store,
            subscribers=self.subscribers,
            executor=self.executor,
            settings_store=self.settings_store,
            mutex=self.mutex,
            short_term=ShortTermMemory(ttl_seconds=self.settings.agents.short_term_ttl_seconds),
        )

    def orchestrator(self, user_id: str) -> AgentOrchestrator:
        """Get the (cached) event router for an account."""
        if user_id not in self._orchestrators:
            self._orchestrators[user_id] = AgentOrchestrator(user_id, self.create_agent)
        return self._orchestrators[user_id]


def bootstrap(
    settings: Settings | None = None,
    *,
    llm: LLMClient | None = None,
    embeddings: EmbeddingProvider | None = None,
    memory_store: MemoryStore | None = None,
    episode_store: EpisodeStore | None = None,
    action_store: ActionStore | None = None,
    subscribers: SubscriberDirectory | None = None,
    settings_store: AgentSettingsStore | None = None,
    executor: ActionExecutor | None = None,
    configure_logging: bool = True,
) -> RetainerContext:
    """Bootstrap the agent loop.

    Anything not passed in is built from settings: the generative
    executor from `providers.llm`, the embedding provider from
    `providers.embedding` (selected once, here), and in-memory stores.

    Args:
        settings: Settings to use (default: get_settings())
        configure_logging: Call setup_logging from observability settings

    Returns:
        RetainerContext holding the shared pieces
    """
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(
            level=settings.log_level,
            format=settings.observability.log_format,
            redact_pii=settings.observability.redact_pii,
        )

    llm_available = True
    if llm is None:
        executor_llm = create_executor(settings.providers.llm)
        llm_available = not executor_llm.is_mock
        llm = executor_llm

    if embeddings is None:
        embeddings = create_embedding_provider(
            settings.providers.embedding,
            llm,
            llm_available=llm_available,
            timeout=settings.providers.llm.timeout,
        )

    ctx = RetainerContext(
        settings=settings,
        llm=llm,
        embeddings=embeddings,
        memory_store=memory_store or InMemoryMemoryStore(),
        episode_store=episode_store or InMemoryEpisodeStore(),
        action_store=action_store or InMemoryActionStore(),
        subscribers=subscribers or InMemorySubscriberDirectory(),
        settings_store=settings_store or InMemoryAgentSettingsStore(),
        executor=executor or LoggingActionExecutor(),
        mutex=SubscriberMutex() if settings.agents.serialize_subscriber_events else None,
    )

    logger.info(
        "retainer_bootstrapped",
        llm=getattr(llm, "model", type(llm).__name__),
        embeddings=embeddings.provider_name,
        dimensions=embeddings.dimensions,
        serialize_subscriber_events=settings.agents.serialize_subscriber_events,
    )
    return ctx
