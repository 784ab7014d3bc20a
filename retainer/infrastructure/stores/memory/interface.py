"""MemoryStore abstract interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from retainer.domain.enums import MemoryType
from retainer.domain.memory import Memory

MemoryOrder = Literal["importance", "recency"]


class MemoryStore(ABC):
    """Abstract interface for agent memory storage.

    Supports scoped listing, vector search and an atomic bounded
    importance adjustment. Scope filters take a list of agent types so
    callers can include "global" memories alongside their own.
    """

    @abstractmethod
    async def add_memory(self, memory: Memory) -> UUID:
        """Add a memory to the store."""
        pass

    @abstractmethod
    async def get_memory(self, memory_id: UUID) -> Memory | None:
        """Get a memory by ID."""
        pass

    @abstractmethod
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
        """List memories in scope, most important (or most recent) first."""
        pass

    @abstractmethod
    async def touch_memories(self, memory_ids: list[UUID], accessed_at: datetime) -> None:
        """Record an access: bump access_count and last_accessed_at."""
        pass

    @abstractmethod
    async def vector_search_memories(
        self,
        query_embedding: list[float],
        user_id: str,
        *,
        agent_types: list[str] | None = None,
        limit: int = 10,
        min_score: float = 0.0,
    ) -> list[tuple[Memory, float]]:
        """Search memories by vector similarity, best match first."""
        pass

    @abstractmethod
    async def update_memory(
        self,
        memory_id: UUID,
        *,
        content: dict[str, Any],
        embedding: list[float],
        accessed_at: datetime,
    ) -> bool:
        """Replace a memory's content and embedding."""
        pass

    @abstractmethod
    async def adjust_importance(self, memory_id: UUID, delta: float) -> float | None:
        """Atomically add delta to importance_score, clamped to [0, 1].

        Returns the new score, or None if the memory does not exist.
        """
        pass

    @abstractmethod
    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool:
        """Delete a memory owned by user_id."""
        pass

    @abstractmethod
    async def delete_stale_memories(
        self,
        user_id: str,
        *,
        now: datetime,
        min_importance: float,
        created_before: datetime,
    ) -> int:
        """Delete expired memories and low-importance memories created before a cutoff.

        Returns count of deleted memories.
        """
        pass
