"""ActionStore for action records, reasoning logs, communications and feedback."""

from retainer.infrastructure.stores.action.inmemory import InMemoryActionStore
from retainer.infrastructure.stores.action.interface import ActionStore

__all__ = [
    "ActionStore",
    "InMemoryActionStore",
]
