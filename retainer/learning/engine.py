"""Learning engine: folds episode outcomes back into memory.

Resolving an episode extracts lessons, then updates, in order: the
subscriber's outcome memory, the trigger/action pattern, the importance
of similar memories, and (on success) the subscriber's preferences.
"""

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from retainer.config.models.learning import LearningConfig
from retainer.domain.actions import Feedback
from retainer.domain.enums import FeedbackType, MemoryType, Outcome
from retainer.domain.episode import Episode, EpisodeResolution, Lesson
from retainer.domain.errors import ActionNotFoundError, EpisodeNotFoundError
from retainer.domain.memory import OutcomeContent, PatternContent, PreferenceContent
from retainer.infrastructure.providers.llm.base import LLMClient, LLMMessage, ProviderError
from retainer.infrastructure.stores.action.interface import ActionStore
from retainer.learning.batch import batch_analyze_episodes
from retainer.learning.models import BatchAnalysis, LearningStats, TriggerInsights
from retainer.memory.agent_memory import AgentMemory
from retainer.memory.episodes import EpisodeRecorder
from retainer.observability.logging import get_logger
from retainer.observability.metrics import EPISODES_RESOLVED, LLM_FAILURES
from retainer.reasoning.prompts import money
from retainer.reasoning.responses import LessonsResponse
from retainer.utils.locks import KeyedMutex

logger = get_logger(__name__)

FEEDBACK_OUTCOMES: dict[FeedbackType, Outcome] = {
    FeedbackType.APPROVED: Outcome.SUCCESS,
    FeedbackType.CONVERTED: Outcome.SUCCESS,
    FeedbackType.RECOVERED: Outcome.SUCCESS,
    FeedbackType.REJECTED: Outcome.FAILURE,
    FeedbackType.CHURNED: Outcome.FAILURE,
}

OUTCOME_RESULTS = {Outcome.SUCCESS: "positive", Outcome.FAILURE: "negative"}

LESSONS_SYSTEM_PROMPT = """You are the learning system of subscription-management agents.
Analyze the action taken and its result to extract lessons that apply elsewhere.

For each lesson, give:
- insight: an actionable observation
- confidence: a score from 0 to 1 (1 = very confident)
- applicable_to: the conditions where the lesson applies (plan, tenure, trigger, ...)
- recommendation: what to do in future cases

Answer ONLY with JSON:
{
  "lessons": [
    {
      "insight": "Pro customers with 6+ months of tenure respond well to pause offers",
      "confidence": 0.8,
      "applicable_to": {"plan": "pro", "tenure_min": 6},
      "recommendation": "Offer a pause rather than a discount"
    }
  ]
}"""


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def tenure_range(months: int) -> str:
    """Tenure bucket used in a new pattern's applicable_to."""
    if months <= 3:
        return "0-3"
    if months <= 6:
        return "3-6"
    if months <= 12:
        return "6-12"
    return "12+"


def detect_preferences(strategy: str, details: dict[str, Any]) -> dict[str, Any]:
    """Preferences suggested by an action that worked."""
    preferences: dict[str, Any] = {}
    if "friendly" in strategy or "warm" in strategy:
        preferences["preferred_tone"] = "friendly"
    elif "urgent" in strategy:
        preferences["preferred_tone"] = "urgent"
    elif "formal" in strategy:
        preferences["preferred_tone"] = "formal"

    if details.get("discount_percent") or details.get("include_discount"):
        preferences["prefers_discount"] = True
    return preferences


def lessons_prompt(episode: Episode, outcome: Outcome, details: dict[str, Any] | None) -> str:
    situation = episode.situation
    action = episode.action_taken
    parts = [
        "=== SITUATION ===",
        f"Trigger: {situation.trigger}",
        f"Customer plan: {situation.subscriber.plan or 'standard'}",
        f"MRR: {money(situation.subscriber.mrr)}",
        f"Tenure: {situation.subscriber.tenure_months} months",
        "",
        "=== ACTION TAKEN ===",
        f"Type: {action.type}",
        f"Strategy: {action.strategy}",
        f"Details: {json.dumps(action.details, default=str)}",
        "",
        "=== RESULT ===",
        f"Outcome: {outcome.value}",
    ]
    if details:
        parts.append(f"Details: {json.dumps(details, default=str)}")
    parts += [
        "",
        "=== REQUEST ===",
        "Extract 1 to 3 lessons from this experience.",
        "Focus on what generalizes to other similar situations.",
    ]
    return "\n".join(parts)


class LearningEngine:
    """Turns resolved episodes and feedback into memory updates."""

    def __init__(
        self,
        user_id: str,
        agent_type: str,
        memory: AgentMemory,
        episodes: EpisodeRecorder,
        actions: ActionStore,
        llm: LLMClient,
        config: LearningConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        pattern_locks: KeyedMutex | None = None,
    ) -> None:
        """
        Args:
            pattern_locks: Lock registry shared by every engine of the process;
                pattern running averages are serialized per
                (account, agent type, trigger, action) key through it
        """
        self._user_id = user_id
        self._agent_type = agent_type
        self._memory = memory
        self._episodes = episodes
        self._actions = actions
        self._llm = llm
        self._config = config or LearningConfig()
        self._clock = clock
        self._pattern_locks = pattern_locks if pattern_locks is not None else KeyedMutex()

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve_episode(
        self,
        episode_id: UUID,
        outcome: Outcome,
        details: dict[str, Any] | None = None,
    ) -> bool:
        """Resolve a pending episode and learn from it.

        Returns False without touching memory if the episode was already
        resolved.

        Raises:
            EpisodeNotFoundError: No such episode for this agent
            ValueError: outcome is pending
        """
        if outcome == Outcome.PENDING:
            raise ValueError("Cannot resolve an episode to pending")

        episode = await self._episodes.get(episode_id)
        if episode is None:
            raise EpisodeNotFoundError(episode_id)
        if episode.is_resolved:
            logger.info("episode_already_resolved", episode_id=str(episode_id))
            return False

        lessons = await self.extract_lessons(episode, outcome, details)
        resolved = await self._episodes.resolve(
            episode_id,
            EpisodeResolution(
                outcome=outcome,
                outcome_details=details,
                lessons_learned=lessons,
                resolved_at=self._clock(),
            ),
        )
        if resolved is None:
            # Lost the race against a concurrent resolution
            logger.info("episode_already_resolved", episode_id=str(episode_id))
            return False

        EPISODES_RESOLVED.labels(agent_type=self._agent_type, outcome=outcome.value).inc()
        logger.info(
            "episode_resolved",
            episode_id=str(episode_id),
            outcome=outcome.value,
            lessons=len(lessons),
        )

        await self.learn_from_episode(resolved)
        return True

    async def extract_lessons(
        self,
        episode: Episode,
        outcome: Outcome,
        details: dict[str, Any] | None = None,
    ) -> list[Lesson]:
        """Ask the generative backend for lessons. Any failure yields []."""
        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    [
                        LLMMessage(role="system", content=LESSONS_SYSTEM_PROMPT),
                        LLMMessage(role="user", content=lessons_prompt(episode, outcome, details)),
                    ],
                    max_tokens=self._config.lesson_max_tokens,
                    temperature=self._config.lesson_temperature,
                    step="lesson_extraction",
                ),
                timeout=self._config.timeout,
            )
        except (ProviderError, TimeoutError) as e:
            LLM_FAILURES.labels(call_site="lesson_extraction", error_type=type(e).__name__).inc()
            logger.warning("lesson_extraction_failed", episode_id=str(episode.id), error=str(e))
            return LessonsResponse.fallback().lessons

        parsed = LessonsResponse.parse(response.content)
        if parsed is None:
            logger.warning("lesson_extraction_unparsable", episode_id=str(episode.id))
            return LessonsResponse.fallback().lessons
        return parsed.lessons

    # =========================================================================
    # Learning
    # =========================================================================

    async def learn_from_episode(self, episode: Episode) -> None:
        """Apply a resolved episode to memory.

        Each update runs independently; a failing one is logged and the
        others still apply.
        """
        updates = [("outcome_memory", self._store_outcome)]
        updates.append(("pattern", self._update_pattern))
        updates.append(("relevance", self._update_relevance))
        if episode.outcome == Outcome.SUCCESS:
            updates.append(("preferences", self._update_preferences))

        for name, update in updates:
            try:
                await update(episode)
            except Exception as e:
                logger.warning(
                    "learning_update_failed",
                    update=name,
                    episode_id=str(episode.id),
                    error=str(e),
                )

    async def _store_outcome(self, episode: Episode) -> None:
        if not episode.subscriber_id:
            return
        details = episode.outcome_details or {}
        revenue = details.get("revenue_impact")
        await self._memory.store_outcome(
            episode.subscriber_id,
            OutcomeContent(
                action=episode.action_taken.key,
                result=OUTCOME_RESULTS.get(episode.outcome, "neutral"),
                revenue_impact=revenue if isinstance(revenue, int) else None,
                details={
                    "trigger": episode.situation.trigger,
                    "action_details": episode.action_taken.details,
                    "outcome_details": episode.outcome_details,
                },
            ),
        )

    async def _update_pattern(self, episode: Episode) -> None:
        """Running-average update of the trigger/action pattern.

        Serialized per pattern key so concurrent resolutions do not lose
        samples.
        """
        trigger = episode.situation.trigger
        action_key = episode.action_taken.key
        is_success = episode.outcome == Outcome.SUCCESS

        key = f"{self._user_id}:{self._agent_type}:pattern:{trigger}:{action_key}"
        async with self._pattern_locks.acquire(key):
            patterns = await self._memory.get_patterns(trigger, limit=100)
            existing = next(
                (m for m in patterns if m.content.get("best_action") == action_key), None
            )

            if existing is None:
                if is_success:
                    await self._memory.store_pattern(
                        PatternContent(
                            trigger=trigger,
                            best_action=action_key,
                            success_rate=1.0,
                            sample_size=1,
                            applicable_to={
                                "plan": episode.situation.subscriber.plan,
                                "tenure_range": tenure_range(
                                    episode.situation.subscriber.tenure_months
                                ),
                            },
                        )
                    )
                    logger.info("pattern_created", trigger=trigger, action=action_key)
                return

            pattern = PatternContent.model_validate(existing.content)
            sample_size = pattern.sample_size + 1
            success_rate = (pattern.success_rate * pattern.sample_size + int(is_success)) / sample_size
            updated = pattern.model_copy(
                update={"success_rate": success_rate, "sample_size": sample_size}
            )
            await self._memory.update(existing.id, updated.model_dump())

            if is_success:
                await self._memory.reinforce(existing.id, self._config.pattern_reinforce)
            else:
                await self._memory.weaken(existing.id, self._config.pattern_weaken)

            logger.info(
                "pattern_updated",
                trigger=trigger,
                action=action_key,
                success_rate=round(success_rate, 4),
                sample_size=sample_size,
            )

    async def _update_relevance(self, episode: Episode) -> None:
        """Nudge similar memories up or down, scaled by similarity."""
        similar = await self._memory.find_similar_memories(
            episode.situation.describe_for_search(),
            limit=self._config.relevance_limit,
            threshold=self._config.relevance_threshold,
        )
        if episode.outcome == Outcome.SUCCESS:
            delta = self._config.relevance_boost
        else:
            delta = -self._config.relevance_penalty

        for memory, similarity in similar:
            await self._memory.reinforce(memory.id, delta * similarity)

    async def _update_preferences(self, episode: Episode) -> None:
        if not episode.subscriber_id:
            return
        detected = detect_preferences(episode.action_taken.strategy, episode.action_taken.details)
        if not detected:
            return

        existing = await self._memory.get_memories_by_type(
            episode.subscriber_id, MemoryType.PREFERENCE, limit=1
        )
        if existing:
            await self._memory.update(existing[0].id, {**existing[0].content, **detected})
        else:
            await self._memory.store_preference(
                episode.subscriber_id, PreferenceContent.model_validate(detected)
            )
        logger.debug("preferences_updated", subscriber_id=episode.subscriber_id, **detected)

    # =========================================================================
    # Feedback
    # =========================================================================

    async def record_feedback(
        self,
        feedback_type: FeedbackType,
        *,
        action_id: UUID | None = None,
        subscriber_id: str | None = None,
        context: dict[str, Any] | None = None,
        rating: int | None = None,
        comment: str | None = None,
    ) -> UUID:
        """Persist feedback and resolve the linked pending episode, if any.

        Raises:
            ActionNotFoundError: action_id does not exist
        """
        action = None
        if action_id is not None:
            action = await self._actions.get_action(action_id)
            if action is None or action.user_id != self._user_id:
                raise ActionNotFoundError(action_id)

        feedback = Feedback(
            user_id=self._user_id,
            agent_type=self._agent_type,
            feedback_type=feedback_type,
            action_id=action_id,
            subscriber_id=subscriber_id or (action.subscriber_id if action else None),
            context=context or {},
            rating=rating,
            comment=comment,
            created_at=self._clock(),
        )
        feedback_id = await self._actions.add_feedback(feedback)

        outcome = FEEDBACK_OUTCOMES.get(feedback_type)
        if action is None or outcome is None:
            return feedback_id

        if action.episode_id is not None:
            episode = await self._episodes.get(action.episode_id)
        else:
            episode = await self._episodes.latest_pending(action.subscriber_id)

        if episode is not None and not episode.is_resolved:
            await self.resolve_episode(
                episode.id,
                outcome,
                {"feedback_type": feedback_type.value, "rating": rating, "comment": comment},
            )
        return feedback_id

    # =========================================================================
    # Analytics
    # =========================================================================

    async def get_top_patterns(self, limit: int | None = None) -> list[PatternContent]:
        """Pattern contents, most important first. Malformed rows are skipped."""
        memories = await self._memory.get_top_patterns(limit or self._config.top_pattern_count)
        patterns = []
        for memory in memories:
            try:
                patterns.append(PatternContent.model_validate(memory.content))
            except ValidationError:
                logger.warning("pattern_content_invalid", memory_id=str(memory.id))
        return patterns

    async def get_learning_stats(self) -> LearningStats:
        """Episode count, success rate, top patterns and recent lessons."""
        total = await self._episodes.count()
        successes = await self._episodes.count(Outcome.SUCCESS)

        recent = await self._episodes.list_recent(limit=self._config.recent_lesson_count)
        lessons = [lesson for ep in recent for lesson in ep.lessons_learned]

        return LearningStats(
            total_episodes=total,
            success_rate=successes / total if total else 0.0,
            top_patterns=await self.get_top_patterns(),
            recent_lessons=lessons[: self._config.recent_lesson_count],
        )

    async def get_trigger_insights(self, trigger: str, limit: int = 1000) -> TriggerInsights:
        """Statistics over resolved episodes for one trigger."""
        episodes = [
            ep
            for ep in await self._episodes.list_recent(limit=limit, resolved_only=True)
            if ep.situation.trigger == trigger
        ]
        if not episodes:
            return TriggerInsights(trigger=trigger)

        successes = sum(1 for ep in episodes if ep.outcome == Outcome.SUCCESS)

        stats: dict[str, tuple[int, int]] = {}
        for ep in episodes:
            won, total = stats.get(ep.action_taken.strategy, (0, 0))
            stats[ep.action_taken.strategy] = (won + (ep.outcome == Outcome.SUCCESS), total + 1)

        best_strategy, best_rate = None, 0.0
        for strategy, (won, total) in stats.items():
            if total >= self._config.best_strategy_min_samples and won / total > best_rate:
                best_strategy, best_rate = strategy, won / total

        durations = [
            (ep.resolved_at - ep.created_at).total_seconds() / 3600
            for ep in episodes
            if ep.resolved_at is not None
        ]
        return TriggerInsights(
            trigger=trigger,
            total_cases=len(episodes),
            success_rate=successes / len(episodes),
            best_strategy=best_strategy,
            avg_hours_to_resolution=sum(durations) / len(durations) if durations else None,
        )

    async def analyze_recent(self, limit: int = 100) -> BatchAnalysis:
        """Mine patterns from the most recent resolved episodes."""
        episodes = await self._episodes.list_recent(limit=limit, resolved_only=True)
        return batch_analyze_episodes(episodes)
