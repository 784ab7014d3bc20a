"""AgentCore: per-event orchestration for one agent of one account.

Event flow:
    received -> rejected (inactive, unsupported trigger, limit reached)
    received -> situated -> reasoned -> gated -> action created
             -> pending_approval | executed (or failed)
    later: outcome reported -> episode resolved by the learning engine

Policy rejections return None and leave no trace in the stores.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from retainer.agents.capabilities import AgentCapability
from retainer.agents.executors import MESSAGE_CHANNELS, ActionExecutor
from retainer.agents.limits import LimitChecker
from retainer.agents.mutex import SubscriberMutex, build_subscriber_key
from retainer.approval.gate import requires_approval
from retainer.domain.actions import (
    AgentAction,
    AgentActionResult,
    Communication,
    ReasoningLog,
)
from retainer.domain.agent_config import AgentConfig, BrandSettings
from retainer.domain.enums import ActionStatus, FeedbackType, Outcome
from retainer.domain.episode import ActionTaken
from retainer.domain.errors import (
    ActionExecutionError,
    ActionNotFoundError,
    InvalidActionStateError,
    SubscriberNotFoundError,
)
from retainer.domain.reasoning import ReasoningStep
from retainer.domain.situation import AgentEvent, Situation, SubscriberSnapshot
from retainer.infrastructure.providers.llm.executor import (
    ExecutionContext,
    clear_execution_context,
    set_execution_context,
)
from retainer.infrastructure.stores.action.interface import ActionStore
from retainer.infrastructure.stores.agent_settings.interface import AgentSettingsStore
from retainer.infrastructure.stores.subscriber.interface import SubscriberDirectory
from retainer.learning.engine import LearningEngine
from retainer.memory.episodes import EpisodeRecorder
from retainer.memory.short_term import ShortTermMemory
from retainer.observability.logging import get_logger
from retainer.observability.metrics import (
    ACTION_EXECUTIONS,
    APPROVALS_REQUIRED,
    EVENTS_HANDLED,
)
from retainer.reasoning.engine import ReasoningEngine

logger = get_logger(__name__)

EXECUTABLE_STATUSES = {ActionStatus.APPROVED, ActionStatus.PENDING_APPROVAL}


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def tenure_months(created_at: datetime | None, now: datetime) -> int:
    """Whole calendar months between creation and now, floored at 0."""
    if created_at is None:
        return 0
    months = (now.year - created_at.year) * 12 + (now.month - created_at.month)
    return max(0, months)


class AgentCore:
    """Handles lifecycle events for one agent type of one account."""

    def __init__(
        self,
        user_id: str,
        capability: AgentCapability,
        *,
        reasoning: ReasoningEngine,
        learning: LearningEngine,
        episodes: EpisodeRecorder,
        actions: ActionStore,
        subscribers: SubscriberDirectory,
        executor: ActionExecutor,
        settings_store: AgentSettingsStore | None = None,
        mutex: SubscriberMutex | None = None,
        short_term: ShortTermMemory | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_id = user_id
        self._capability = capability
        self._agent_type = capability.agent_type.value
        self._reasoning = reasoning
        self._learning = learning
        self._episodes = episodes
        self._actions = actions
        self._subscribers = subscribers
        self._executor = executor
        self._settings_store = settings_store
        self._mutex = mutex
        self._short_term = short_term or ShortTermMemory()
        self._clock = clock
        self._limits = LimitChecker(user_id, self._agent_type, actions, clock=clock)

        self._config: AgentConfig | None = None
        self._brand: BrandSettings | None = None
        self._init_lock = asyncio.Lock()
        self._executing: set[UUID] = set()

    @property
    def agent_type(self) -> str:
        return self._agent_type

    @property
    def capability(self) -> AgentCapability:
        return self._capability

    @property
    def config(self) -> AgentConfig:
        if self._config is None:
            raise RuntimeError("AgentCore.initialize() has not run")
        return self._config

    @property
    def brand(self) -> BrandSettings:
        if self._brand is None:
            raise RuntimeError("AgentCore.initialize() has not run")
        return self._brand

    @property
    def short_term(self) -> ShortTermMemory:
        return self._short_term

    def is_active(self) -> bool:
        return self._config is not None and self._config.is_active

    # =========================================================================
    # Initialization
    # =========================================================================

    async def initialize(self) -> None:
        """Load agent config and brand settings once.

        Falls back to defaults when the settings store is missing, has
        no row, or fails.
        """
        if self._config is not None:
            return

        async with self._init_lock:
            if self._config is not None:
                return

            config: AgentConfig | None = None
            brand: BrandSettings | None = None
            if self._settings_store is not None:
                try:
                    config, brand = await asyncio.gather(
                        self._settings_store.get_agent_config(self._user_id, self._agent_type),
                        self._settings_store.get_brand_settings(self._user_id),
                    )
                except Exception as e:
                    logger.warning(
                        "agent_settings_load_failed",
                        agent_type=self._agent_type,
                        error=str(e),
                    )

            self._brand = brand or BrandSettings(user_id=self._user_id)
            self._config = config or AgentConfig(user_id=self._user_id, agent_type=self._agent_type)
            logger.info(
                "agent_initialized",
                agent_type=self._agent_type,
                is_active=self._config.is_active,
                confidence_level=self._config.confidence_level,
                default_config=config is None,
            )

    # =========================================================================
    # Event handling
    # =========================================================================

    async def handle_event(self, event: AgentEvent) -> AgentActionResult | None:
        """Decide and act on one event.

        Returns None when the agent is inactive, the trigger is not
        supported, or a limit is reached.

        Raises:
            SubscriberNotFoundError: Event references an unknown subscriber
        """
        await self.initialize()

        if not self.is_active():
            logger.info("agent_inactive", agent_type=self._agent_type, user_id=self._user_id)
            EVENTS_HANDLED.labels(agent_type=self._agent_type, result="rejected").inc()
            return None

        if not self._capability.supports(event.type):
            logger.debug("event_not_supported", agent_type=self._agent_type, event_type=event.type)
            EVENTS_HANDLED.labels(agent_type=self._agent_type, result="rejected").inc()
            return None

        self._short_term.cleanup()

        set_execution_context(
            ExecutionContext(
                user_id=self._user_id,
                agent_type=self._agent_type,
                subscriber_id=event.subscriber_id,
            )
        )
        try:
            if self._mutex is None:
                return await self._process(event)
            key = build_subscriber_key(self._user_id, self._agent_type, event.subscriber_id)
            async with self._mutex.acquire(key):
                return await self._process(event)
        except Exception:
            EVENTS_HANDLED.labels(agent_type=self._agent_type, result="error").inc()
            raise
        finally:
            clear_execution_context()

    async def _process(self, event: AgentEvent) -> AgentActionResult | None:
        config = self.config
        situation = await self._build_situation(event)

        check = await self._limits.check(event.subscriber_id, config.limits)
        if not check.allowed:
            logger.info(
                "limit_reached",
                agent_type=self._agent_type,
                subscriber_id=event.subscriber_id,
                reason=check.reason,
            )
            EVENTS_HANDLED.labels(agent_type=self._agent_type, result="rejected").inc()
            return None

        result = await self._reasoning.reason(situation, config, self.brand)
        decision = result.decision

        needs_approval = requires_approval(config.confidence_level, decision, result.confidence)
        APPROVALS_REQUIRED.labels(
            agent_type=self._agent_type,
            confidence_level=config.confidence_level,
            required=str(needs_approval).lower(),
        ).inc()

        situation_embedding = await self._episodes.embed_for_record(situation)

        action = AgentAction(
            user_id=self._user_id,
            agent_type=self._agent_type,
            subscriber_id=situation.subscriber.id,
            action_type=decision.action,
            description=self._capability.describe_action(decision, situation),
            status=ActionStatus.PENDING_APPROVAL if needs_approval else ActionStatus.APPROVED,
            result={
                "strategy": decision.strategy,
                "details": decision.details,
                "confidence": result.confidence,
                "trigger": situation.trigger,
                "subscriber_email": situation.subscriber.email,
                "subscriber_name": situation.subscriber.name,
            },
            created_at=self._clock(),
        )
        await self._actions.create_action(action)
        await self._actions.save_reasoning_logs(
            [ReasoningLog.from_step(action.id, step) for step in result.steps]
        )

        episode = await self._episodes.record(
            situation,
            ActionTaken(type=decision.action, strategy=decision.strategy, details=decision.details),
            situation_embedding=situation_embedding,
        )
        await self._actions.set_episode(action.id, episode.id)
        self._short_term.set(f"last_action:{situation.subscriber.id}", action.id)

        status = ActionStatus.PENDING_APPROVAL
        if not needs_approval:
            try:
                executed = await self.execute_action(action.id)
                status = executed.status
            except ActionExecutionError:
                status = ActionStatus.FAILED

        logger.info(
            "event_handled",
            agent_type=self._agent_type,
            event_type=event.type,
            action_id=str(action.id),
            action=decision.action,
            strategy=decision.strategy,
            confidence=result.confidence,
            status=status.value,
            fallback=result.fallback,
        )
        EVENTS_HANDLED.labels(agent_type=self._agent_type, result="handled").inc()

        return AgentActionResult(
            action_id=action.id,
            status=status,
            decision=decision,
            confidence=result.confidence,
            reasoning=result.steps,
            requires_approval=needs_approval,
        )

    async def _build_situation(self, event: AgentEvent) -> Situation:
        subscriber = await self._subscribers.get_subscriber(self._user_id, event.subscriber_id)
        if subscriber is None:
            raise SubscriberNotFoundError(event.subscriber_id)

        now = self._clock()
        interactions = await self._actions.count_communications(self._user_id, subscriber.id)
        snapshot = SubscriberSnapshot(
            id=subscriber.id,
            email=subscriber.email,
            name=subscriber.name,
            plan=subscriber.plan_name,
            mrr=subscriber.mrr,
            tenure_months=tenure_months(subscriber.created_at, now),
            health_score=subscriber.health_score,
            last_payment_status=subscriber.last_payment_status,
            last_payment_at=subscriber.last_payment_at,
            previous_interactions=interactions,
            total_spent=subscriber.total_spent,
            country=subscriber.country,
        )
        return Situation(subscriber=snapshot, trigger=event.type, context=event.data, timestamp=now)

    # =========================================================================
    # Action lifecycle
    # =========================================================================

    async def _get_action(self, action_id: UUID) -> AgentAction:
        action = await self._actions.get_action(action_id)
        if action is None or action.user_id != self._user_id:
            raise ActionNotFoundError(action_id)
        return action

    async def execute_action(self, action_id: UUID) -> AgentAction:
        """Run an approved or pending action through the executor.

        Executing an already executed action returns it unchanged.

        Raises:
            ActionNotFoundError: No such action
            InvalidActionStateError: Action was rejected or failed
            ActionExecutionError: The executor raised; the action is now failed
        """
        action = await self._get_action(action_id)
        if action.status == ActionStatus.EXECUTED or action_id in self._executing:
            return action
        if action.status not in EXECUTABLE_STATUSES:
            raise InvalidActionStateError(action_id, action.status.value, "executed")

        self._executing.add(action_id)
        try:
            try:
                updates = await self._executor.execute(action, self.brand)
            except Exception as e:
                await self._actions.transition_action(
                    action_id,
                    from_statuses=EXECUTABLE_STATUSES,
                    to_status=ActionStatus.FAILED,
                    result_updates={"error": str(e)},
                )
                ACTION_EXECUTIONS.labels(agent_type=self._agent_type, status="failed").inc()
                logger.error(
                    "action_execution_failed",
                    action_id=str(action_id),
                    action_type=action.action_type,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise ActionExecutionError(action_id, e) from e

            executed = await self._actions.transition_action(
                action_id,
                from_statuses=EXECUTABLE_STATUSES,
                to_status=ActionStatus.EXECUTED,
                result_updates=updates,
                executed_at=self._clock(),
            )
        finally:
            self._executing.discard(action_id)

        if executed is None:
            # Status changed underneath us (e.g. rejected meanwhile)
            return await self._get_action(action_id)

        channel = MESSAGE_CHANNELS.get(executed.action_type)
        if channel:
            await self._actions.record_communication(
                Communication(
                    user_id=self._user_id,
                    subscriber_id=executed.subscriber_id,
                    channel=channel,
                    action_id=action_id,
                    created_at=self._clock(),
                )
            )

        ACTION_EXECUTIONS.labels(agent_type=self._agent_type, status="executed").inc()
        logger.info("action_executed", action_id=str(action_id), action_type=executed.action_type)
        return executed

    async def approve_action(self, action_id: UUID) -> AgentAction:
        """Approve a pending action and execute it.

        Raises:
            ActionNotFoundError: No such action
            InvalidActionStateError: Action is not pending approval
            ActionExecutionError: The executor raised; the action is now failed
        """
        await self.initialize()
        action = await self._get_action(action_id)
        approved = await self._actions.transition_action(
            action_id,
            from_statuses={ActionStatus.PENDING_APPROVAL},
            to_status=ActionStatus.APPROVED,
            result_updates={"approved_at": self._clock().isoformat()},
        )
        if approved is None:
            raise InvalidActionStateError(action_id, action.status.value, "approved")

        logger.info("action_approved", action_id=str(action_id))
        return await self.execute_action(action_id)

    async def reject_action(self, action_id: UUID, reason: str | None = None) -> AgentAction:
        """Reject a pending action; its episode is resolved as a failure.

        Raises:
            ActionNotFoundError: No such action
            InvalidActionStateError: Action is not pending approval
        """
        action = await self._get_action(action_id)
        rejected = await self._actions.transition_action(
            action_id,
            from_statuses={ActionStatus.PENDING_APPROVAL},
            to_status=ActionStatus.REJECTED,
            result_updates={"rejection_reason": reason},
        )
        if rejected is None:
            raise InvalidActionStateError(action_id, action.status.value, "rejected")

        logger.info("action_rejected", action_id=str(action_id), reason=reason)
        await self._learning.record_feedback(
            FeedbackType.REJECTED,
            action_id=action_id,
            subscriber_id=rejected.subscriber_id,
            comment=reason,
        )
        return rejected

    # =========================================================================
    # Learning and audit
    # =========================================================================

    async def record_outcome(
        self,
        action_id: UUID,
        outcome: Outcome,
        details: dict[str, Any] | None = None,
    ) -> bool:
        """Resolve the pending episode behind an action.

        Uses the episode linked to the action; actions without a link fall
        back to the subscriber's most recent pending episode. Returns False
        if there is none, or it was already resolved.

        Raises:
            ActionNotFoundError: No such action
        """
        action = await self._get_action(action_id)

        if action.episode_id is not None:
            episode = await self._episodes.get(action.episode_id)
        else:
            episode = await self._episodes.latest_pending(action.subscriber_id)

        if episode is None:
            logger.info("no_pending_episode", action_id=str(action_id))
            return False
        return await self._learning.resolve_episode(episode.id, outcome, details)

    async def get_reasoning(self, action_id: UUID) -> list[ReasoningStep]:
        """Stored reasoning steps for an action, in step order."""
        await self._get_action(action_id)
        logs = await self._actions.get_reasoning_logs(action_id)
        return [log.to_step() for log in logs]

    def last_action_for(self, subscriber_id: str) -> UUID | None:
        """Action most recently created for a subscriber in this process."""
        return self._short_term.get(f"last_action:{subscriber_id}")
