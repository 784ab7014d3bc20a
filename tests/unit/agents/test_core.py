"""Tests for AgentCore event handling and the action lifecycle."""

import asyncio
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio

from retainer.agents.capabilities import RECOVERY, payment_failed_event
from retainer.agents.core import AgentCore, tenure_months
from retainer.agents.mutex import SubscriberMutex
from retainer.config.models.learning import LearningConfig
from retainer.config.models.reasoning import ReasoningConfig
from retainer.domain.actions import AgentAction, Communication
from retainer.domain.agent_config import BrandSettings, LimitsConfig
from retainer.domain.enums import ActionStatus, FeedbackType, Outcome
from retainer.domain.errors import (
    ActionExecutionError,
    ActionNotFoundError,
    InvalidActionStateError,
    SubscriberNotFoundError,
)
from retainer.domain.situation import AgentEvent
from retainer.infrastructure.providers.embedding import (
    EmbeddingProvider,
    EmbeddingResponse,
    HashEmbeddingProvider,
)
from retainer.infrastructure.providers.llm import MockLLMProvider
from retainer.infrastructure.stores.agent_settings import InMemoryAgentSettingsStore
from retainer.infrastructure.stores.subscriber import InMemorySubscriberDirectory
from retainer.learning import LearningEngine
from retainer.memory import AgentMemory, EpisodeRecorder
from retainer.reasoning import ReasoningEngine
from tests.factories import AgentConfigFactory, ResponseFactory, SubscriberFactory

NOW = datetime(2026, 3, 10, 10, 0, tzinfo=UTC)


class RecordingExecutor:
    """Executor double that records calls and can be told to fail."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[AgentAction] = []
        self.error = error

    async def execute(self, action: AgentAction, brand: BrandSettings) -> dict[str, Any] | None:
        self.calls.append(action)
        if self.error is not None:
            raise self.error
        return {"message_id": f"msg_{len(self.calls)}", "from": brand.company_name}


class UnavailableEmbeddings(EmbeddingProvider):
    """Embedding backend whose every request fails."""

    @property
    def provider_name(self) -> str:
        return "unavailable"

    @property
    def dimensions(self) -> int:
        return 64

    async def embed(self, texts: list[str]) -> EmbeddingResponse:
        raise RuntimeError("OpenAI embedding request failed: 503")


@pytest.fixture
def llm() -> MockLLMProvider:
    return MockLLMProvider(
        responses={
            "option_generation": ResponseFactory.options(),
            "evaluation": ResponseFactory.evaluations(0.8, 0.4),
            "lesson_extraction": ResponseFactory.lessons("Reminders recover payments"),
        }
    )


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def settings_store() -> InMemoryAgentSettingsStore:
    store = InMemoryAgentSettingsStore()
    store.save_agent_config(AgentConfigFactory.create())
    store.save_brand_settings(AgentConfigFactory.brand())
    return store


@pytest.fixture
def subscribers() -> InMemorySubscriberDirectory:
    return InMemorySubscriberDirectory([SubscriberFactory.create(now=NOW)])


@pytest.fixture
def make_agent(
    agent_memory, episode_recorder, action_store, llm, executor, settings_store, subscribers
):
    """Build a recovery AgentCore with a fixed clock."""

    def _create(**overrides: Any) -> AgentCore:
        kwargs: dict[str, Any] = {
            "reasoning": ReasoningEngine(
                "recovery", agent_memory, episode_recorder, llm, ReasoningConfig(timeout=1.0)
            ),
            "learning": LearningEngine(
                "acct_test",
                "recovery",
                agent_memory,
                episode_recorder,
                action_store,
                llm,
                LearningConfig(timeout=1.0),
                clock=lambda: NOW,
            ),
            "episodes": episode_recorder,
            "actions": action_store,
            "subscribers": subscribers,
            "executor": executor,
            "settings_store": settings_store,
            "clock": lambda: NOW,
        }
        kwargs.update(overrides)
        return AgentCore("acct_test", RECOVERY, **kwargs)

    return _create


@pytest.fixture
def event() -> AgentEvent:
    return payment_failed_event("sub_1", invoice_id="in_1", amount=7900)


def _configure(settings_store, **kwargs) -> None:
    settings_store.save_agent_config(AgentConfigFactory.create(**kwargs))


class TestHandleEvent:
    """Tests for AgentCore.handle_event."""

    @pytest.mark.asyncio
    async def test_review_all_creates_pending_action(
        self, make_agent, event, action_store, episode_store, executor
    ):
        """Should create a pending action, its reasoning and an open episode."""
        agent = make_agent()

        result = await agent.handle_event(event)

        assert result.status == ActionStatus.PENDING_APPROVAL
        assert result.requires_approval is True
        assert (result.decision.action, result.decision.strategy) == ("email", "friendly")
        assert result.confidence == 0.8
        assert [step.step_number for step in result.reasoning] == [1, 2, 3, 4, 5, 6]
        assert executor.calls == []

        action = await action_store.get_action(result.action_id)
        assert action.status == ActionStatus.PENDING_APPROVAL
        assert action.description.startswith("Payment reminder email (friendly) to Jane")
        assert action.result["trigger"] == "payment_failed"
        assert action.result["subscriber_email"] == "jane@example.com"

        episode = await episode_store.get_episode(action.episode_id)
        assert episode.outcome == Outcome.PENDING
        assert episode.situation.subscriber.tenure_months == 6
        assert episode.situation.context["invoice_id"] == "in_1"
        assert episode.action_taken.key == "email_friendly"

        assert agent.last_action_for("sub_1") == result.action_id
        steps = await agent.get_reasoning(result.action_id)
        assert [step.step_number for step in steps] == [1, 2, 3, 4, 5, 6]

    @pytest.mark.asyncio
    async def test_full_auto_executes(
        self, make_agent, settings_store, event, action_store, executor
    ):
        """Should execute immediately and count the email sent."""
        _configure(settings_store, confidence_level="full_auto")

        result = await make_agent().handle_event(event)

        assert result.status == ActionStatus.EXECUTED
        assert result.requires_approval is False
        assert len(executor.calls) == 1
        action = await action_store.get_action(result.action_id)
        assert action.executed_at == NOW
        assert action.result["message_id"] == "msg_1"
        assert action.result["from"] == "Acme"
        assert await action_store.count_communications("acct_test", "sub_1", channel="email") == 1

    @pytest.mark.asyncio
    async def test_previous_interactions_counted(
        self, make_agent, settings_store, event, episode_store
    ):
        _configure(settings_store, confidence_level="full_auto")
        agent = make_agent()

        await agent.handle_event(event)
        second = await agent.handle_event(event)

        episodes = await episode_store.list_episodes("acct_test", "recovery")
        counts = sorted(ep.situation.subscriber.previous_interactions for ep in episodes)
        assert counts == [0, 1]
        assert second.status == ActionStatus.EXECUTED

    @pytest.mark.asyncio
    async def test_executor_failure_marks_action_failed(
        self, make_agent, settings_store, event, action_store
    ):
        _configure(settings_store, confidence_level="full_auto")
        agent = make_agent(executor=RecordingExecutor(RuntimeError("smtp down")))

        result = await agent.handle_event(event)

        assert result.status == ActionStatus.FAILED
        action = await action_store.get_action(result.action_id)
        assert action.status == ActionStatus.FAILED
        assert action.result["error"] == "smtp down"
        assert await action_store.count_communications("acct_test", "sub_1") == 0

    @pytest.mark.asyncio
    async def test_daily_limit_rejects_without_trace(
        self, make_agent, settings_store, event, action_store, episode_store, llm
    ):
        """Should return None before reasoning and persist nothing."""
        _configure(
            settings_store,
            limits=LimitsConfig(max_actions_day=1, send_hours_start=None, timezone="UTC"),
        )
        await action_store.create_action(
            AgentAction(
                user_id="acct_test",
                agent_type="recovery",
                subscriber_id="sub_2",
                action_type="email",
                status=ActionStatus.EXECUTED,
                created_at=NOW,
            )
        )

        assert await make_agent().handle_event(event) is None

        assert await action_store.count_actions("acct_test", "recovery", since=NOW) == 1
        assert await episode_store.count_episodes("acct_test", "recovery") == 0
        assert llm.call_history == []

    @pytest.mark.asyncio
    async def test_weekly_email_limit(self, make_agent, event, action_store):
        for _ in range(3):
            await action_store.record_communication(
                Communication(user_id="acct_test", subscriber_id="sub_1", channel="email")
            )

        assert await make_agent().handle_event(event) is None

    @pytest.mark.asyncio
    async def test_other_account_emails_not_counted(
        self, make_agent, event, action_store, episode_store
    ):
        """Should ignore messages another account sent to a subscriber with the same id."""
        for _ in range(3):
            await action_store.record_communication(
                Communication(user_id="acct_other", subscriber_id="sub_1", channel="email")
            )

        result = await make_agent().handle_event(event)

        assert result is not None
        action = await action_store.get_action(result.action_id)
        episode = await episode_store.get_episode(action.episode_id)
        assert episode.situation.subscriber.previous_interactions == 0

    @pytest.mark.asyncio
    async def test_embedding_outage_still_records(
        self, make_agent, event, llm, memory_store, episode_store, action_store
    ):
        """Should degrade the searches and store the episode with a hash embedding."""
        embeddings = UnavailableEmbeddings()
        memory = AgentMemory("acct_test", "recovery", memory_store, embeddings)
        episodes = EpisodeRecorder("acct_test", "recovery", episode_store, embeddings)
        agent = make_agent(
            reasoning=ReasoningEngine(
                "recovery", memory, episodes, llm, ReasoningConfig(timeout=1.0)
            ),
            episodes=episodes,
        )

        result = await agent.handle_event(event)

        assert result.status == ActionStatus.PENDING_APPROVAL
        action = await action_store.get_action(result.action_id)
        episode = await episode_store.get_episode(action.episode_id)
        assert episode.outcome == Outcome.PENDING
        assert episode.situation_embedding == HashEmbeddingProvider(dimensions=64).embed_text(
            episode.situation.describe_for_search()
        )

        assert await make_agent().handle_event(event) is None

    @pytest.mark.asyncio
    async def test_inactive_agent(self, make_agent, settings_store, event, action_store):
        _configure(settings_store, is_active=False)

        assert await make_agent().handle_event(event) is None
        assert await action_store.count_actions("acct_test", "recovery", since=NOW) == 0

    @pytest.mark.asyncio
    async def test_missing_settings_default_to_inactive(self, make_agent, event):
        agent = make_agent(settings_store=None)

        assert await agent.handle_event(event) is None
        assert agent.config.is_active is False
        assert agent.brand.company_name == "My Company"

    @pytest.mark.asyncio
    async def test_unsupported_trigger(self, make_agent):
        event = AgentEvent(type="trial_ending", subscriber_id="sub_1")
        assert await make_agent().handle_event(event) is None

    @pytest.mark.asyncio
    async def test_unknown_subscriber(self, make_agent):
        with pytest.raises(SubscriberNotFoundError):
            await make_agent().handle_event(
                payment_failed_event("sub_missing", invoice_id="in_1", amount=100)
            )

    @pytest.mark.asyncio
    async def test_mutex_serializes_limit_checks(self, make_agent, settings_store, event):
        """Should let only one of two simultaneous events through a cap of one."""
        _configure(
            settings_store,
            limits=LimitsConfig(max_actions_day=1, send_hours_start=None, timezone="UTC"),
        )
        agent = make_agent(mutex=SubscriberMutex())

        results = await asyncio.gather(agent.handle_event(event), agent.handle_event(event))

        assert sum(result is not None for result in results) == 1


class TestActionLifecycle:
    """Tests for approve, reject, execute and outcome reporting."""

    @pytest_asyncio.fixture
    async def pending(self, make_agent, event):
        agent = make_agent()
        result = await agent.handle_event(event)
        return agent, result.action_id

    @pytest.mark.asyncio
    async def test_approve_executes(self, pending, action_store, executor, episode_store):
        agent, action_id = pending

        action = await agent.approve_action(action_id)

        assert action.status == ActionStatus.EXECUTED
        assert "approved_at" in action.result
        assert len(executor.calls) == 1
        assert await action_store.list_feedback("acct_test") == []
        episode = await episode_store.get_episode(action.episode_id)
        assert episode.outcome == Outcome.PENDING

        with pytest.raises(InvalidActionStateError):
            await agent.approve_action(action_id)

    @pytest.mark.asyncio
    async def test_approve_with_failing_executor(self, pending, executor, action_store):
        agent, action_id = pending
        executor.error = RuntimeError("gateway timeout")

        with pytest.raises(ActionExecutionError) as exc_info:
            await agent.approve_action(action_id)

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert (await action_store.get_action(action_id)).status == ActionStatus.FAILED
        with pytest.raises(InvalidActionStateError):
            await agent.execute_action(action_id)

    @pytest.mark.asyncio
    async def test_execute_is_idempotent(self, pending, executor):
        agent, action_id = pending

        first = await agent.execute_action(action_id)
        second = await agent.execute_action(action_id)

        assert first.status == second.status == ActionStatus.EXECUTED
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    async def test_reject_resolves_episode_as_failure(
        self, pending, action_store, episode_store, executor
    ):
        agent, action_id = pending

        action = await agent.reject_action(action_id, reason="Too pushy")

        assert action.status == ActionStatus.REJECTED
        assert action.result["rejection_reason"] == "Too pushy"
        assert executor.calls == []
        [feedback] = await action_store.list_feedback("acct_test", action_id=action_id)
        assert feedback.feedback_type == FeedbackType.REJECTED
        assert feedback.comment == "Too pushy"
        episode = await episode_store.get_episode(action.episode_id)
        assert episode.outcome == Outcome.FAILURE

        with pytest.raises(InvalidActionStateError):
            await agent.reject_action(action_id)
        with pytest.raises(InvalidActionStateError):
            await agent.execute_action(action_id)

    @pytest.mark.asyncio
    async def test_record_outcome(self, pending, episode_store, action_store):
        agent, action_id = pending

        assert await agent.record_outcome(action_id, Outcome.SUCCESS, {"revenue_impact": 7900})
        assert await agent.record_outcome(action_id, Outcome.FAILURE) is False

        action = await action_store.get_action(action_id)
        episode = await episode_store.get_episode(action.episode_id)
        assert episode.outcome == Outcome.SUCCESS
        assert episode.resolved_at == NOW
        assert episode.lessons_learned[0].insight == "Reminders recover payments"

    @pytest.mark.asyncio
    async def test_unknown_action(self, make_agent):
        agent = make_agent()
        missing = uuid4()

        for call in (
            agent.execute_action(missing),
            agent.approve_action(missing),
            agent.reject_action(missing),
            agent.record_outcome(missing, Outcome.SUCCESS),
            agent.get_reasoning(missing),
        ):
            with pytest.raises(ActionNotFoundError):
                await call

    def test_last_action_unknown_subscriber(self, make_agent):
        assert make_agent().last_action_for("sub_9") is None


class TestTenureMonths:
    """Tests for calendar-month tenure."""

    @pytest.mark.parametrize(
        ("created_at", "expected"),
        [
            (None, 0),
            (datetime(2026, 3, 1, tzinfo=UTC), 0),
            (datetime(2026, 2, 28, tzinfo=UTC), 1),
            (datetime(2025, 9, 5, tzinfo=UTC), 6),
            (datetime(2024, 3, 10, tzinfo=UTC), 24),
            (datetime(2026, 5, 1, tzinfo=UTC), 0),
        ],
    )
    def test_tenure_months(self, created_at, expected):
        assert tenure_months(created_at, NOW) == expected
