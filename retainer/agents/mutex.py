"""Per-subscriber mutual exclusion for event handling.

In-process only: one lock per (account, agent type, subscriber) key, so
limit checks and episode creation for a subscriber never interleave
inside one process. Across processes, caps remain best-effort.
"""

from retainer.utils.locks import KeyedMutex


class SubscriberMutex(KeyedMutex):
    """Keyed locks for event handling.

    Lock key format: {user_id}:{agent_type}:{subscriber_id}

    Usage:
        async with mutex.acquire(build_subscriber_key(user, agent, sub)):
            # Only one event for this subscriber at a time
    """


def build_subscriber_key(user_id: str, agent_type: str, subscriber_id: str) -> str:
    """Build the composite mutex key for one subscriber of one agent."""
    return f"{user_id}:{agent_type}:{subscriber_id}"
