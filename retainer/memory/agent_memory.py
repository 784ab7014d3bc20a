"""Agent-facing memory: typed storage, scoped recall and similarity search.

AgentMemory wraps a MemoryStore and the embedding provider for one
(user, agent type) pair. Reads include memories shared under the
"global" scope. Importance changes go through the store's atomic
adjust operation.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from retainer.domain.enums import GLOBAL_SCOPE, MemoryType
from retainer.domain.memory import Memory, OutcomeContent, PatternContent, PreferenceContent
from retainer.infrastructure.providers.embedding.base import EmbeddingProvider
from retainer.infrastructure.stores.memory.interface import MemoryStore
from retainer.observability.logging import get_logger

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def content_text(content: dict[str, Any]) -> str:
    """Stable text form of memory content, used for embedding."""
    return json.dumps(content, sort_keys=True, default=str)


class AgentMemory:
    """Typed memory access for one agent of one account."""

    def __init__(
        self,
        user_id: str,
        agent_type: str,
        store: MemoryStore,
        embeddings: EmbeddingProvider,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._user_id = user_id
        self._agent_type = agent_type
        self._store = store
        self._embeddings = embeddings
        self._clock = clock

    @property
    def scope(self) -> list[str]:
        """Agent types visible to this agent."""
        return [self._agent_type, GLOBAL_SCOPE]

    # =========================================================================
    # Retrieval
    # =========================================================================

    async def get_subscriber_memories(self, subscriber_id: str, limit: int = 50) -> list[Memory]:
        """Memories about one subscriber, most important first. Marks them accessed."""
        memories = await self._store.list_memories(
            self._user_id,
            agent_types=self.scope,
            subscriber_id=subscriber_id,
            order_by="importance",
            limit=limit,
        )
        await self._touch(memories)
        return memories

    async def get_memories_by_type(
        self,
        subscriber_id: str,
        memory_type: MemoryType,
        limit: int = 10,
    ) -> list[Memory]:
        """Memories of one type about one subscriber, newest first. Marks them accessed."""
        memories = await self._store.list_memories(
            self._user_id,
            agent_types=self.scope,
            subscriber_id=subscriber_id,
            memory_type=memory_type,
            order_by="recency",
            limit=limit,
        )
        await self._touch(memories)
        return memories

    async def find_similar_memories(
        self,
        query_text: str,
        limit: int = 10,
        threshold: float = 0.7,
    ) -> list[tuple[Memory, float]]:
        """Embed the query and return (memory, similarity) pairs above threshold.

        An embedding failure yields no matches.
        """
        try:
            embedding = await self._embeddings.embed_single(query_text)
        except Exception as e:
            logger.warning("memory_search_embedding_failed", error=str(e))
            return []

        return await self._store.vector_search_memories(
            embedding,
            self._user_id,
            agent_types=self.scope,
            limit=limit,
            min_score=threshold,
        )

    async def get_patterns(self, trigger: str, limit: int = 10) -> list[Memory]:
        """Pattern memories learned for a trigger, most important first."""
        patterns = await self._store.list_memories(
            self._user_id,
            agent_types=self.scope,
            memory_type=MemoryType.PATTERN,
            order_by="importance",
            limit=10_000,
        )
        return [m for m in patterns if m.content.get("trigger") == trigger][:limit]

    async def get_top_patterns(self, limit: int = 5) -> list[Memory]:
        """Most important pattern memories across triggers."""
        return await self._store.list_memories(
            self._user_id,
            agent_types=self.scope,
            memory_type=MemoryType.PATTERN,
            order_by="importance",
            limit=limit,
        )

    async def _touch(self, memories: list[Memory]) -> None:
        if memories:
            await self._store.touch_memories([m.id for m in memories], self._clock())

    # =========================================================================
    # Storage
    # =========================================================================

    async def store(
        self,
        memory_type: MemoryType,
        content: dict[str, Any],
        *,
        subscriber_id: str | None = None,
        agent_type: str | None = None,
        importance: float = 0.5,
        expires_at: datetime | None = None,
    ) -> UUID | None:
        """Embed and persist a memory.

        Returns the new id, or None if embedding or storage failed.
        """
        try:
            embedding = await self._embeddings.embed_single(content_text(content))
            memory = Memory(
                user_id=self._user_id,
                agent_type=agent_type or self._agent_type,
                subscriber_id=subscriber_id,
                memory_type=memory_type,
                content=content,
                embedding=embedding,
                importance_score=importance,
                created_at=self._clock(),
                last_accessed_at=self._clock(),
                expires_at=expires_at,
            )
            return await self._store.add_memory(memory)
        except Exception as e:
            logger.warning(
                "memory_store_failed",
                memory_type=memory_type.value,
                subscriber_id=subscriber_id,
                error=str(e),
            )
            return None

    async def store_interaction(
        self, subscriber_id: str, interaction: dict[str, Any]
    ) -> UUID | None:
        """Store an interaction (email_sent, email_opened, ...)."""
        content = {**interaction}
        content.setdefault("date", self._clock().isoformat())
        return await self.store(
            MemoryType.INTERACTION, content, subscriber_id=subscriber_id, importance=0.6
        )

    async def store_preference(
        self, subscriber_id: str, preference: PreferenceContent
    ) -> UUID | None:
        """Store a detected subscriber preference."""
        return await self.store(
            MemoryType.PREFERENCE,
            preference.model_dump(exclude_none=True),
            subscriber_id=subscriber_id,
            importance=0.7,
        )

    async def store_pattern(self, pattern: PatternContent) -> UUID | None:
        """Store a learned pattern; importance grows with its success rate."""
        return await self.store(
            MemoryType.PATTERN,
            pattern.model_dump(),
            importance=min(0.9, 0.5 + pattern.success_rate * 0.4),
        )

    async def store_outcome(self, subscriber_id: str, outcome: OutcomeContent) -> UUID | None:
        """Store the outcome of an action for a subscriber."""
        content = outcome.model_dump(exclude_none=True)
        content["recorded_at"] = self._clock().isoformat()
        return await self.store(
            MemoryType.OUTCOME,
            content,
            subscriber_id=subscriber_id,
            importance=0.8 if outcome.result == "positive" else 0.6,
        )

    async def store_fact(self, subscriber_id: str, facts: dict[str, Any]) -> UUID | None:
        """Store facts about a subscriber, shared across agents."""
        content = {**facts, "updated_at": self._clock().isoformat()}
        return await self.store(
            MemoryType.FACT,
            content,
            subscriber_id=subscriber_id,
            agent_type=GLOBAL_SCOPE,
            importance=0.8,
        )

    # =========================================================================
    # Updates
    # =========================================================================

    async def reinforce(self, memory_id: UUID, boost: float = 0.1) -> float | None:
        """Raise a memory's importance by boost (atomic, clamped)."""
        return await self._store.adjust_importance(memory_id, boost)

    async def weaken(self, memory_id: UUID, penalty: float = 0.05) -> float | None:
        """Lower a memory's importance by penalty (atomic, clamped)."""
        return await self._store.adjust_importance(memory_id, -penalty)

    async def update(self, memory_id: UUID, content: dict[str, Any]) -> bool:
        """Replace a memory's content and re-embed it."""
        embedding = await self._embeddings.embed_single(content_text(content))
        return await self._store.update_memory(
            memory_id, content=content, embedding=embedding, accessed_at=self._clock()
        )

    async def delete(self, memory_id: UUID) -> bool:
        """Delete a memory owned by this account."""
        return await self._store.delete_memory(memory_id, self._user_id)

    async def cleanup(self, min_importance: float = 0.1, max_age_days: int = 365) -> int:
        """Delete expired memories and old low-importance ones.

        Returns count of deleted memories.
        """
        now = self._clock()
        deleted = await self._store.delete_stale_memories(
            self._user_id,
            now=now,
            min_importance=min_importance,
            created_before=now - timedelta(days=max_age_days),
        )
        logger.info("memory_cleanup_complete", user_id=self._user_id, deleted=deleted)
        return deleted


# =============================================================================
# Prompt summaries
# =============================================================================


def summarize_memory(memory: Memory) -> str:
    """One-line summary of a memory."""
    content = memory.content
    if memory.memory_type == MemoryType.INTERACTION:
        return f"{content.get('type')}: {content.get('response') or 'pending'}"
    if memory.memory_type == MemoryType.PREFERENCE:
        return "Prefers: " + ", ".join(f"{k}={v}" for k, v in content.items())
    if memory.memory_type == MemoryType.PATTERN:
        rate = round(float(content.get("success_rate", 0)) * 100)
        return f"{content.get('trigger')} -> {content.get('best_action')} ({rate}%)"
    if memory.memory_type == MemoryType.OUTCOME:
        return f"{content.get('action')}: {content.get('result')}"
    return content_text(content)


def summarize_memories(memories: list[Memory]) -> str:
    """Summary of a set of memories for a prompt, grouped by type."""
    if not memories:
        return "No memories available for this customer."

    by_type: dict[MemoryType, list[Memory]] = {}
    for memory in memories:
        by_type.setdefault(memory.memory_type, []).append(memory)

    parts: list[str] = []
    if facts := by_type.get(MemoryType.FACT):
        parts.append(f"Facts: {content_text(facts[0].content)}")
    if preferences := by_type.get(MemoryType.PREFERENCE):
        parts.append(
            "Detected preferences: " + ", ".join(content_text(m.content) for m in preferences)
        )
    if interactions := by_type.get(MemoryType.INTERACTION):
        recent = ", ".join(
            f"{m.content.get('type')} ({m.content.get('response') or 'no response'})"
            for m in interactions[:3]
        )
        parts.append(f"Recent interactions: {recent}")
    if outcomes := by_type.get(MemoryType.OUTCOME):
        positives = sum(1 for m in outcomes if m.content.get("result") == "positive")
        parts.append(f"History: {positives}/{len(outcomes)} positive actions")
    if patterns := by_type.get(MemoryType.PATTERN):
        top = patterns[0].content
        rate = round(float(top.get("success_rate", 0)) * 100)
        parts.append(f"Known pattern: {top.get('best_action')} has {rate}% success")

    return ". ".join(parts)
