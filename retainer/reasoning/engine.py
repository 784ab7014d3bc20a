"""Six-step reasoning pipeline.

Turns a Situation into a scored decision with an audit trail:

1. Context gathering
2. Memory retrieval
3. Episode retrieval
4. Option generation (generative backend)
5. Option evaluation (generative backend)
6. Decision

Every step appends exactly one ReasoningStep. Backend failures, timeouts
and malformed answers take a documented fallback and are recorded in the
step data; reason() never raises.
"""

import asyncio
import time
from typing import Any

from retainer.config.models.reasoning import ReasoningConfig
from retainer.domain.agent_config import AgentConfig, BrandSettings
from retainer.domain.enums import MemoryType, Outcome, ReasoningStepType
from retainer.domain.episode import Episode
from retainer.domain.memory import Memory
from retainer.domain.reasoning import (
    ActionOption,
    EvaluatedOption,
    ReasoningResult,
    ReasoningStep,
)
from retainer.domain.situation import Situation
from retainer.infrastructure.providers.llm.base import LLMClient, LLMMessage, ProviderError
from retainer.memory.agent_memory import AgentMemory, summarize_memory
from retainer.memory.episodes import EpisodeRecorder
from retainer.observability.logging import get_logger
from retainer.observability.metrics import (
    LLM_FAILURES,
    REASONING_FALLBACKS,
    REASONING_STEP_LATENCY,
)
from retainer.reasoning import prompts
from retainer.reasoning.responses import EvaluationResponse, OptionsResponse

logger = get_logger(__name__)

_STEP_NUMBERS = {
    ReasoningStepType.CONTEXT_GATHERING: 1,
    ReasoningStepType.MEMORY_RETRIEVAL: 2,
    ReasoningStepType.EPISODE_RETRIEVAL: 3,
    ReasoningStepType.OPTION_GENERATION: 4,
    ReasoningStepType.EVALUATION: 5,
    ReasoningStepType.DECISION: 6,
}


class ReasoningEngine:
    """Runs the reasoning pipeline for one agent of one account.

    Steps are collected per call, so one engine can reason about several
    events concurrently.
    """

    def __init__(
        self,
        agent_type: str,
        memory: AgentMemory,
        episodes: EpisodeRecorder,
        llm: LLMClient,
        config: ReasoningConfig | None = None,
    ) -> None:
        self._agent_type = agent_type
        self._memory = memory
        self._episodes = episodes
        self._llm = llm
        self._config = config or ReasoningConfig()

    async def reason(
        self,
        situation: Situation,
        agent_config: AgentConfig,
        brand: BrandSettings,
    ) -> ReasoningResult:
        """Produce a decision, its confidence and the reasoning trail."""
        steps: list[ReasoningStep] = []

        try:
            self._gather_context(situation, steps)
            memories = await self._retrieve_memories(situation, steps)
            episodes = await self._find_similar_episodes(situation, steps)

            options = await self._generate_options(
                situation, memories, episodes, agent_config, brand, steps
            )
            if options is None:
                self._skip_evaluation(steps)
                return self._fallback(
                    situation, steps, "Option generation failed; using the default approach."
                )

            evaluated = await self._evaluate_options(
                options, situation, memories, episodes, agent_config, steps
            )
            return self._decide(evaluated, situation, steps)

        except Exception as e:
            logger.error(
                "reasoning_failed",
                agent_type=self._agent_type,
                trigger=situation.trigger,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._fallback(
                situation,
                steps,
                "Reasoning failed; using the default approach.",
                error=f"{type(e).__name__}: {e}",
            )

    # =========================================================================
    # Step bookkeeping
    # =========================================================================

    def _append_step(
        self,
        steps: list[ReasoningStep],
        step_type: ReasoningStepType,
        thought: str,
        data: dict[str, Any],
        started: float,
        confidence: float | None = None,
    ) -> None:
        elapsed = time.perf_counter() - started
        steps.append(
            ReasoningStep(
                step_number=_STEP_NUMBERS[step_type],
                step_type=step_type,
                thought=thought,
                data=data,
                confidence_score=confidence,
                duration_ms=round(elapsed * 1000, 3),
            )
        )
        REASONING_STEP_LATENCY.labels(agent_type=self._agent_type, step=step_type.value).observe(
            elapsed
        )

    def _record_fallback(self, step_type: ReasoningStepType) -> None:
        REASONING_FALLBACKS.labels(agent_type=self._agent_type, step=step_type.value).inc()

    async def _call_llm(
        self, call_site: str, system_prompt: str, prompt: str, temperature: float
    ) -> str:
        """One bounded generative call. Raises ProviderError or TimeoutError."""
        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    [
                        LLMMessage(role="system", content=system_prompt),
                        LLMMessage(role="user", content=prompt),
                    ],
                    max_tokens=self._config.max_tokens,
                    temperature=temperature,
                    step=call_site,
                ),
                timeout=self._config.timeout,
            )
        except (ProviderError, TimeoutError) as e:
            LLM_FAILURES.labels(call_site=call_site, error_type=type(e).__name__).inc()
            raise
        return response.content

    # =========================================================================
    # Step 1: context gathering
    # =========================================================================

    def _gather_context(self, situation: Situation, steps: list[ReasoningStep]) -> None:
        started = time.perf_counter()
        thought = (
            "Gathering information about this case. "
            f"{prompts.describe_subscriber(situation.subscriber)} "
            f"{prompts.describe_trigger(situation.trigger, situation.context)}"
        )
        self._append_step(
            steps,
            ReasoningStepType.CONTEXT_GATHERING,
            thought,
            {
                "subscriber": situation.subscriber.model_dump(mode="json"),
                "trigger": situation.trigger,
                "context": situation.context,
                "timestamp": situation.timestamp.isoformat(),
            },
            started,
        )

    # =========================================================================
    # Step 2: memory retrieval
    # =========================================================================

    async def _retrieve_memories(
        self, situation: Situation, steps: list[ReasoningStep]
    ) -> list[Memory]:
        started = time.perf_counter()
        data: dict[str, Any] = {}

        try:
            subscriber_memories = await self._memory.get_subscriber_memories(
                situation.subscriber.id, limit=self._config.subscriber_memory_limit
            )
            similar = await self._memory.find_similar_memories(
                situation.describe_for_search(),
                limit=self._config.similar_memory_limit,
                threshold=self._config.similar_memory_threshold,
            )
        except Exception as e:
            logger.warning("memory_retrieval_failed", error=str(e))
            self._record_fallback(ReasoningStepType.MEMORY_RETRIEVAL)
            subscriber_memories, similar = [], []
            data.update(fallback=True, error=str(e))

        similar_memories = [memory for memory, _ in similar]
        memories = list(subscriber_memories)
        seen = {m.id for m in memories}
        for memory in similar_memories:
            if memory.id not in seen:
                seen.add(memory.id)
                memories.append(memory)

        data.update(
            subscriber_memories_count=len(subscriber_memories),
            similar_memories_count=len(similar_memories),
            total_memories=len(memories),
            relevant_memories=[
                {
                    "id": str(m.id),
                    "type": m.memory_type.value,
                    "summary": summarize_memory(m),
                    "importance": m.importance_score,
                }
                for m in memories[:5]
            ],
        )
        self._append_step(
            steps,
            ReasoningStepType.MEMORY_RETRIEVAL,
            self._memory_thought(subscriber_memories, similar_memories),
            data,
            started,
        )
        return memories

    def _memory_thought(self, subscriber_memories: list[Memory], similar: list[Memory]) -> str:
        parts = [
            f"Found {len(subscriber_memories)} memories about this customer "
            f"and {len(similar)} memories from similar situations."
        ]
        interactions = [m for m in subscriber_memories if m.memory_type == MemoryType.INTERACTION]
        preferences = [m for m in subscriber_memories if m.memory_type == MemoryType.PREFERENCE]
        outcomes = [m for m in subscriber_memories if m.memory_type == MemoryType.OUTCOME]
        facts = [m for m in subscriber_memories if m.memory_type == MemoryType.FACT]

        if facts:
            parts.append(f"Known facts: {summarize_memory(facts[0])}.")
        if interactions:
            parts.append(f"This customer had {len(interactions)} past interactions.")
        if preferences:
            parts.append(
                "Known preferences: " + ", ".join(summarize_memory(p) for p in preferences) + "."
            )
        if outcomes:
            positives = sum(1 for o in outcomes if o.content.get("result") == "positive")
            parts.append(f"History: {positives}/{len(outcomes)} positive outcomes.")
        return " ".join(parts)

    # =========================================================================
    # Step 3: episode retrieval
    # =========================================================================

    async def _find_similar_episodes(
        self, situation: Situation, steps: list[ReasoningStep]
    ) -> list[tuple[Episode, float]]:
        started = time.perf_counter()
        data: dict[str, Any] = {}

        try:
            episodes = await self._episodes.find_similar(
                situation,
                limit=self._config.episode_limit,
                threshold=self._config.episode_threshold,
            )
        except Exception as e:
            logger.warning("episode_retrieval_failed", error=str(e))
            self._record_fallback(ReasoningStepType.EPISODE_RETRIEVAL)
            episodes = []
            data.update(fallback=True, error=str(e))

        successes = sum(1 for ep, _ in episodes if ep.outcome == Outcome.SUCCESS)
        failures = sum(1 for ep, _ in episodes if ep.outcome == Outcome.FAILURE)
        winner = prompts.winning_strategy(episodes)
        lesson = self._key_lesson(episodes)

        if not episodes:
            thought = "No similar past episodes found. This is a new situation."
        else:
            thought = (
                f"Found {len(episodes)} similar past situations. "
                f"{successes} succeeded, {failures} failed."
            )
            if winner:
                thought += f' Strategy "{winner[0]}" worked {winner[1]} times.'
            if lesson:
                thought += f' Key lesson: "{lesson.insight}"'

        data.update(
            total_episodes=len(episodes),
            success_count=successes,
            failure_count=failures,
            winning_strategy=winner[0] if winner else None,
            key_lesson=lesson.model_dump() if lesson else None,
            top_episodes=[
                {
                    "similarity": round(similarity, 4),
                    "action": ep.action_taken.model_dump(),
                    "outcome": ep.outcome.value,
                    "lessons": [lesson.model_dump() for lesson in ep.lessons_learned],
                }
                for ep, similarity in episodes[:5]
            ],
        )
        self._append_step(steps, ReasoningStepType.EPISODE_RETRIEVAL, thought, data, started)
        return episodes

    def _key_lesson(self, episodes: list[tuple[Episode, float]]):
        lessons = [
            lesson
            for ep, _ in episodes
            for lesson in ep.lessons_learned
            if lesson.confidence > self._config.lesson_confidence_floor
        ]
        return max(lessons, key=lambda lesson: lesson.confidence, default=None)

    # =========================================================================
    # Step 4: option generation
    # =========================================================================

    async def _generate_options(
        self,
        situation: Situation,
        memories: list[Memory],
        episodes: list[tuple[Episode, float]],
        config: AgentConfig,
        brand: BrandSettings,
        steps: list[ReasoningStep],
    ) -> list[ActionOption] | None:
        """Returns None when the backend call itself failed."""
        started = time.perf_counter()
        step_type = ReasoningStepType.OPTION_GENERATION

        try:
            content = await self._call_llm(
                "option_generation",
                prompts.options_system_prompt(brand),
                prompts.options_prompt(situation, memories, episodes, config, brand),
                self._config.option_temperature,
            )
        except (ProviderError, TimeoutError) as e:
            error = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            logger.warning("option_generation_failed", agent_type=self._agent_type, error=error)
            self._record_fallback(step_type)
            self._append_step(
                steps,
                step_type,
                "Could not generate options: the generative backend failed.",
                {"options_count": 0, "options": [], "fallback": True, "error": error},
                started,
            )
            return None

        parsed = OptionsResponse.parse(content, max_options=self._config.max_options)
        data: dict[str, Any] = {}
        if parsed is None:
            logger.warning("option_generation_unparsable", content_preview=content[:200])
            self._record_fallback(step_type)
            parsed = OptionsResponse.fallback()
            thought = "Could not generate options. Using a default approach."
            data.update(fallback=True, error="unparsable options response")
        else:
            listed = ", ".join(
                f'({i}) {o.action} with strategy "{o.strategy}"'
                for i, o in enumerate(parsed.options, 1)
            )
            thought = f"Generated {len(parsed.options)} possible options: {listed}."

        data.update(
            options_count=len(parsed.options),
            options=[o.model_dump(include={"action", "strategy", "details"}) for o in parsed.options],
        )
        self._append_step(steps, step_type, thought, data, started)
        return parsed.options

    def _skip_evaluation(self, steps: list[ReasoningStep]) -> None:
        started = time.perf_counter()
        self._append_step(
            steps,
            ReasoningStepType.EVALUATION,
            "Skipped evaluation: no options were generated.",
            {"skipped": True, "evaluations": []},
            started,
        )

    # =========================================================================
    # Step 5: evaluation
    # =========================================================================

    async def _evaluate_options(
        self,
        options: list[ActionOption],
        situation: Situation,
        memories: list[Memory],
        episodes: list[tuple[Episode, float]],
        config: AgentConfig,
        steps: list[ReasoningStep],
    ) -> list[EvaluatedOption]:
        started = time.perf_counter()
        step_type = ReasoningStepType.EVALUATION
        data: dict[str, Any] = {}

        try:
            content = await self._call_llm(
                "evaluation",
                prompts.EVALUATION_SYSTEM_PROMPT,
                prompts.evaluation_prompt(options, situation, memories, episodes, config),
                self._config.evaluation_temperature,
            )
            parsed = EvaluationResponse.parse(content, options)
            if parsed is None:
                logger.warning("evaluation_unparsable", content_preview=content[:200])
                data.update(fallback=True, error="unparsable evaluation response")
                parsed = EvaluationResponse.fallback(options, "Default evaluation")
        except (ProviderError, TimeoutError) as e:
            error = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
            logger.warning("evaluation_failed", agent_type=self._agent_type, error=error)
            data.update(fallback=True, error=error)
            parsed = EvaluationResponse.fallback(options, "Evaluation error")

        if data.get("fallback"):
            self._record_fallback(step_type)

        # Stable sort: exact ties keep generation order
        evaluated = sorted(parsed.evaluated, key=lambda o: o.score, reverse=True)

        parts = ["Evaluated each option."]
        parts.extend(f"Option {i} ({o.strategy}): {o.score:.0%}" for i, o in enumerate(evaluated, 1))
        if evaluated:
            best = evaluated[0]
            parts.append(f'The best option is "{best.strategy}" with a score of {best.score:.0%}.')
            if best.reasons:
                parts.append(f"Reasons: {'; '.join(best.reasons[:2])}.")

        data["evaluations"] = [
            {"action": o.action, "strategy": o.strategy, "score": o.score, "reasons": o.reasons}
            for o in evaluated
        ]
        self._append_step(steps, step_type, " ".join(parts), data, started)
        return evaluated

    # =========================================================================
    # Step 6: decision
    # =========================================================================

    def _decide(
        self,
        evaluated: list[EvaluatedOption],
        situation: Situation,
        steps: list[ReasoningStep],
    ) -> ReasoningResult:
        if not evaluated:
            return self._fallback(situation, steps, "No option available; using the default approach.")

        started = time.perf_counter()
        best = evaluated[0]
        runner_up = evaluated[1] if len(evaluated) > 1 else None
        gap = best.score - runner_up.score if runner_up else 1.0
        near_tie = runner_up is not None and gap < self._config.near_tie_gap

        thought = (
            f'Final decision: "{best.action}" with strategy "{best.strategy}". '
            f"Confidence: {best.score:.0%}."
        )
        if best.reasons:
            thought += f" Main reasons: {'; '.join(best.reasons[:2])}."
        if near_tie and runner_up:
            thought += (
                f' Note: option "{runner_up.strategy}" was close ({runner_up.score:.0%}); '
                "kept the higher-ranked option."
            )

        decision = ActionOption(
            action=best.action,
            strategy=best.strategy,
            details=best.details,
            predicted_success_rate=best.predicted_success_rate,
            reasoning=best.reasoning,
        )
        self._append_step(
            steps,
            ReasoningStepType.DECISION,
            thought,
            {
                "trigger": situation.trigger,
                "chosen_option": decision.model_dump(include={"action", "strategy", "details"}),
                "confidence": best.score,
                "score_difference_with_second": round(gap, 4),
                "near_tie": near_tie,
                "reasons": best.reasons,
                "alternative_considered": (
                    {"strategy": runner_up.strategy, "score": runner_up.score} if runner_up else None
                ),
            },
            started,
            confidence=best.score,
        )
        if near_tie:
            logger.info(
                "reasoning_near_tie",
                agent_type=self._agent_type,
                chosen=best.strategy,
                runner_up=runner_up.strategy if runner_up else None,
                gap=round(gap, 4),
            )
        return ReasoningResult(decision=decision, confidence=best.score, steps=steps)

    def _fallback(
        self,
        situation: Situation,
        steps: list[ReasoningStep],
        thought: str,
        error: str | None = None,
    ) -> ReasoningResult:
        """Default decision: a friendly email at low confidence."""
        confidence = self._config.fallback_confidence
        details: dict[str, Any] = {"fallback": True}
        if error:
            details["error"] = error
        decision = ActionOption(action="email", strategy="friendly", details=details)

        self._record_fallback(ReasoningStepType.DECISION)
        if not steps or steps[-1].step_number < _STEP_NUMBERS[ReasoningStepType.DECISION]:
            self._append_step(
                steps,
                ReasoningStepType.DECISION,
                thought,
                {
                    "trigger": situation.trigger,
                    "chosen_option": decision.model_dump(include={"action", "strategy", "details"}),
                    "confidence": confidence,
                    "fallback": True,
                    "error": error,
                },
                time.perf_counter(),
                confidence=confidence,
            )
        return ReasoningResult(
            decision=decision, confidence=confidence, steps=steps, fallback=True
        )
