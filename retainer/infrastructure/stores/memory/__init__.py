"""MemoryStore for typed agent memories with vector recall."""

from retainer.infrastructure.stores.memory.inmemory import InMemoryMemoryStore
from retainer.infrastructure.stores.memory.interface import MemoryOrder, MemoryStore

__all__ = [
    "MemoryStore",
    "MemoryOrder",
    "InMemoryMemoryStore",
]
