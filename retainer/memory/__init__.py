"""Agent memory: long-term typed memories, episodes and short-term scratch space.

Memories and episodes are persisted through the stores in
retainer.infrastructure.stores; the classes here are the only writers.
"""

from retainer.memory.agent_memory import AgentMemory, summarize_memories, summarize_memory
from retainer.memory.episodes import EpisodeRecorder
from retainer.memory.short_term import ShortTermMemory

__all__ = [
    "AgentMemory",
    "EpisodeRecorder",
    "ShortTermMemory",
    "summarize_memories",
    "summarize_memory",
]
