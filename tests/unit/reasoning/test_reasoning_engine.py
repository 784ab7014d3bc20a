"""Tests for the six-step ReasoningEngine."""

from unittest.mock import AsyncMock

import pytest

from retainer.config.models.reasoning import ReasoningConfig
from retainer.domain.enums import Outcome, ReasoningStepType
from retainer.domain.episode import Lesson
from retainer.infrastructure.providers.llm import MockLLMProvider, ProviderError
from retainer.memory import AgentMemory
from retainer.reasoning import ReasoningEngine
from tests.factories import AgentConfigFactory, EpisodeFactory, ResponseFactory, SituationFactory


@pytest.fixture
def engine_factory(agent_memory, episode_recorder):
    """Build an engine around a scripted backend."""

    def _create(llm: MockLLMProvider, memory: AgentMemory | None = None, **config) -> ReasoningEngine:
        return ReasoningEngine(
            "recovery",
            memory or agent_memory,
            episode_recorder,
            llm,
            ReasoningConfig(timeout=0.05, **config),
        )

    return _create


@pytest.fixture
def situation():
    return SituationFactory.create()


@pytest.fixture
def config():
    return AgentConfigFactory.create()


@pytest.fixture
def brand():
    return AgentConfigFactory.brand()


def _step_numbers(result) -> list[int]:
    return [step.step_number for step in result.steps]


class TestReasoningPipeline:
    """Tests for the happy path."""

    @pytest.mark.asyncio
    async def test_six_steps_and_best_option(self, engine_factory, situation, config, brand):
        """Should record steps 1-6 and pick the highest score."""
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(0.4, 0.8),
            }
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        assert _step_numbers(result) == [1, 2, 3, 4, 5, 6]
        assert [s.step_type for s in result.steps] == list(ReasoningStepType)
        assert (result.decision.action, result.decision.strategy) == ("discount", "value_focused")
        assert result.confidence == 0.8
        assert result.fallback is False
        assert result.steps[-1].confidence_score == 0.8
        assert all(step.duration_ms >= 0 for step in result.steps)

    @pytest.mark.asyncio
    async def test_prompts_carry_brand_and_situation(self, engine_factory, situation, config, brand):
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(0.6, 0.5),
            }
        )

        await engine_factory(llm).reason(situation, config, brand)

        messages = llm.calls_for("option_generation")[0]["messages"]
        assert "Acme" in messages[0].content
        assert "payment_failed" in messages[1].content
        assert llm.calls_for("evaluation")[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_exact_tie_keeps_generation_order(self, engine_factory, situation, config, brand):
        """Should keep the first generated option on an exact tie."""
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(("sms", "urgent"), ("email", "friendly")),
                "evaluation": ResponseFactory.evaluations(0.7, 0.7),
            }
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.decision.action == "sms"
        decision = result.steps[-1].data
        assert decision["near_tie"] is True
        assert decision["score_difference_with_second"] == 0.0
        assert decision["alternative_considered"] == {"strategy": "friendly", "score": 0.7}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("scores", "near_tie"), [((0.75, 0.7), True), ((0.9, 0.5), False)])
    async def test_near_tie_annotation(
        self, engine_factory, situation, config, brand, scores, near_tie
    ):
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(*scores),
            }
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.steps[-1].data["near_tie"] is near_tie

    @pytest.mark.asyncio
    async def test_single_option(self, engine_factory, situation, config, brand):
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(("email", "friendly")),
                "evaluation": ResponseFactory.evaluations(0.65),
            }
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        decision = result.steps[-1].data
        assert decision["near_tie"] is False
        assert decision["alternative_considered"] is None


class TestReasoningFallbacks:
    """Tests for backend failures and malformed answers."""

    @pytest.mark.asyncio
    async def test_option_generation_failure(self, engine_factory, situation, config, brand):
        """Should fall back to a friendly email at 0.3 and skip evaluation."""
        llm = MockLLMProvider(errors={"option_generation": ProviderError("all models failed")})

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.fallback is True
        assert (result.decision.action, result.decision.strategy) == ("email", "friendly")
        assert result.decision.details["fallback"] is True
        assert result.confidence == 0.3
        assert _step_numbers(result) == [1, 2, 3, 4, 5, 6]
        assert result.steps[3].data["fallback"] is True
        assert result.steps[4].data["skipped"] is True
        assert llm.calls_for("evaluation") == []

    @pytest.mark.asyncio
    async def test_option_generation_timeout(self, engine_factory, situation, config, brand):
        """Should treat a slow backend like a failed one."""
        llm = MockLLMProvider(
            responses={"option_generation": ResponseFactory.options()},
            delays={"option_generation": 1.0},
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.fallback is True
        assert result.confidence == 0.3
        assert "TimeoutError" in result.steps[3].data["error"]

    @pytest.mark.asyncio
    async def test_unparsable_options_use_default(self, engine_factory, situation, config, brand):
        """Should continue with the default option when the answer is not JSON."""
        llm = MockLLMProvider(default_response="Mock response")

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.fallback is False
        assert result.decision.details == {"default": True}
        assert result.confidence == 0.5
        assert result.steps[3].data["fallback"] is True
        assert result.steps[4].data["fallback"] is True

    @pytest.mark.asyncio
    async def test_evaluation_timeout(self, engine_factory, situation, config, brand):
        """Should use descending default scores when evaluation times out."""
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(("sms", "urgent"), ("email", "friendly")),
                "evaluation": ResponseFactory.evaluations(0.1, 0.9),
            },
            delays={"evaluation": 1.0},
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.decision.action == "sms"
        assert result.confidence == 0.5
        evaluations = result.steps[4].data["evaluations"]
        assert [e["score"] for e in evaluations] == [0.5, 0.4]
        assert evaluations[0]["reasons"] == ["Evaluation error"]

    @pytest.mark.asyncio
    async def test_unexpected_error_never_raises(self, engine_factory, situation, config, brand):
        """Should return the default decision on any unexpected error."""
        llm = MockLLMProvider(errors={"option_generation": ValueError("bad prompt")})

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.fallback is True
        assert result.confidence == 0.3
        assert result.decision.details["error"] == "ValueError: bad prompt"
        assert _step_numbers(result) == [1, 2, 3, 6]

    @pytest.mark.asyncio
    async def test_memory_failure_recorded(self, engine_factory, embeddings, situation, config, brand):
        """Should continue without memories when the store fails."""
        store = AsyncMock()
        store.list_memories.side_effect = RuntimeError("db down")
        memory = AgentMemory("acct_test", "recovery", store, embeddings)
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(0.6, 0.5),
            }
        )

        result = await engine_factory(llm, memory=memory).reason(situation, config, brand)

        assert result.fallback is False
        memory_step = result.steps[1].data
        assert memory_step["fallback"] is True
        assert memory_step["total_memories"] == 0


class TestContextRetrieval:
    """Tests for memory and episode retrieval steps."""

    @pytest.mark.asyncio
    async def test_episode_statistics(
        self, engine_factory, episode_store, embeddings, situation, config, brand
    ):
        """Should summarize similar past episodes and their best lesson."""
        embedding = embeddings.embed_text(situation.describe_for_search())
        lesson = Lesson(insight="Friendly reminders recover pro customers", confidence=0.9)
        for outcome, strategy, lessons in (
            (Outcome.SUCCESS, "friendly", [lesson]),
            (Outcome.SUCCESS, "friendly", []),
            (Outcome.FAILURE, "urgent", [Lesson(insight="Too pushy", confidence=0.5)]),
        ):
            await episode_store.add_episode(
                EpisodeFactory.create(
                    outcome=outcome, strategy=strategy, lessons=lessons, embedding=embedding
                )
            )
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(0.6, 0.5),
            }
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        data = result.steps[2].data
        assert data["total_episodes"] == 3
        assert data["success_count"] == 2
        assert data["failure_count"] == 1
        assert data["winning_strategy"] == "friendly"
        assert data["key_lesson"]["insight"] == lesson.insight
        assert "Friendly reminders" in result.steps[2].thought

    @pytest.mark.asyncio
    async def test_memories_deduplicated(self, engine_factory, agent_memory, situation, config, brand):
        """Should not count a memory twice when found both ways."""
        await agent_memory.store_interaction("sub_1", {"type": "email_sent"})
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(0.6, 0.5),
            }
        )

        result = await engine_factory(llm, similar_memory_threshold=0.0).reason(
            situation, config, brand
        )

        data = result.steps[1].data
        assert data["subscriber_memories_count"] == 1
        assert data["total_memories"] == 1

    @pytest.mark.asyncio
    async def test_new_situation(self, engine_factory, situation, config, brand):
        llm = MockLLMProvider(
            responses={
                "option_generation": ResponseFactory.options(),
                "evaluation": ResponseFactory.evaluations(0.6, 0.5),
            }
        )

        result = await engine_factory(llm).reason(situation, config, brand)

        assert result.steps[2].data["total_episodes"] == 0
        assert result.steps[2].thought.startswith("No similar past episodes")
