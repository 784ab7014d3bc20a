"""Dict-backed MemoryStore."""

import asyncio
from datetime import datetime
from typing import Any
from uuid import UUID

from retainer.domain.enums import MemoryType
from retainer.domain.memory import Memory
from retainer.infrastructure.stores.memory.interface import MemoryOrder, MemoryStore
from retainer.utils.vector import cosine_similarity


class InMemoryMemoryStore(MemoryStore):
    """Linear-scan MemoryStore for tests and single-process runs.

    Read-modify-write updates hold one lock so concurrent reinforcement of
    the same memory is not lost.
    """

    def __init__(self) -> None:
        self._memories: dict[UUID, Memory] = {}
        self._lock = asyncio.Lock()

    def _in_scope(
        self,
        memory: Memory,
        user_id: str,
        agent_types: list[str] | None,
    ) -> bool:
        if memory.user_id != user_id:
            return False
        return agent_types is None or memory.agent_type in agent_types

    async def add_memory(self, memory: Memory) -> UUID:
        """Add a memory to the store."""
        self._memories[memory.id] = memory
        return memory.id

    async def get_memory(self, memory_id: UUID) -> Memory | None:
        """Get a memory by ID."""
        return self._memories.get(memory_id)

    async def list_memories(
        self,
        user_id: str,
        *,
        agent_types: list[str] | None = None,
        subscriber_id: str | None = None,
        memory_type: MemoryType | None = None,
        order_by: MemoryOrder = "importance",
        limit: int = 100,
    ) -> list[Memory]:
        """List memories in scope."""
        results = []
        for memory in self._memories.values():
            if not self._in_scope(memory, user_id, agent_types):
                continue
            if subscriber_id is not None and memory.subscriber_id != subscriber_id:
                continue
            if memory_type is not None and memory.memory_type != memory_type:
                continue
            results.append(memory)

        if order_by == "importance":
            results.sort(key=lambda m: (m.importance_score, m.created_at), reverse=True)
        else:
            results.sort(key=lambda m: m.created_at, reverse=True)
        return results[:limit]

    async def touch_memories(self, memory_ids: list[UUID], accessed_at: datetime) -> None:
        """Record an access on each memory."""
        async with self._lock:
            for memory_id in memory_ids:
                memory = self._memories.get(memory_id)
                if memory is not None:
                    memory.access_count += 1
                    memory.last_accessed_at = accessed_at

    async def vector_search_memories(
        self,
        query_embedding: list[float],
        user_id: str,
        *,
        agent_types: list[str] | None = None,
        limit: int = 10,
        min_score: float = 0.0,
    ) -> list[tuple[Memory, float]]:
        """Search memories by vector similarity."""
        results: list[tuple[Memory, float]] = []

        for memory in self._memories.values():
            if not self._in_scope(memory, user_id, agent_types):
                continue
            if len(memory.embedding) != len(query_embedding):
                continue

            score = cosine_similarity(query_embedding, memory.embedding)
            if score >= min_score:
                results.append((memory, score))

        results.sort(key=lambda x: x[1], reverse=True)
        return results[:limit]

    async def update_memory(
        self,
        memory_id: UUID,
        *,
        content: dict[str, Any],
        embedding: list[float],
        accessed_at: datetime,
    ) -> bool:
        """Replace a memory's content and embedding."""
        async with self._lock:
            memory = self._memories.get(memory_id)
            if memory is None:
                return False
            memory.content = content
            memory.embedding = embedding
            memory.last_accessed_at = accessed_at
            return True

    async def adjust_importance(self, memory_id: UUID, delta: float) -> float | None:
        """Atomically add delta to importance_score, clamped to [0, 1]."""
        async with self._lock:
            memory = self._memories.get(memory_id)
            if memory is None:
                return None
            # Assignment runs the clamping validator
            memory.importance_score = memory.importance_score + delta
            return memory.importance_score

    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool:
        """Delete a memory owned by user_id."""
        async with self._lock:
            memory = self._memories.get(memory_id)
            if memory is not None and memory.user_id == user_id:
                del self._memories[memory_id]
                return True
            return False

    async def delete_stale_memories(
        self,
        user_id: str,
        *,
        now: datetime,
        min_importance: float,
        created_before: datetime,
    ) -> int:
        """Delete expired and old low-importance memories."""
        async with self._lock:
            stale = [
                memory.id
                for memory in self._memories.values()
                if memory.user_id == user_id
                and (
                    (memory.expires_at is not None and memory.expires_at <= now)
                    or (
                        memory.importance_score < min_importance
                        and memory.created_at < created_before
                    )
                )
            ]
            for memory_id in stale:
                del self._memories[memory_id]
            return len(stale)
