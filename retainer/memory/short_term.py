"""Process-local short-term memory.

A key -> (value, timestamp) map scoped to one agent instance. Nothing is
persisted or shared between workers; entries are dropped by explicit
TTL cleanup.
"""

import time
from collections.abc import Callable
from typing import Any


class ShortTermMemory:
    """Non-persisted scratch space with TTL cleanup."""

    def __init__(
        self,
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        return entry[0] if entry is not None else default

    def has(self, key: str) -> bool:
        return key in self._entries

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self, max_age_seconds: float | None = None) -> int:
        """Drop entries older than max_age_seconds (default: the configured TTL).

        Returns count of dropped entries.
        """
        max_age = self._ttl_seconds if max_age_seconds is None else max_age_seconds
        now = self._clock()
        expired = [key for key, (_, ts) in self._entries.items() if now - ts > max_age]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
