"""SubscriberDirectory abstract interface."""

from abc import ABC, abstractmethod

from retainer.domain.situation import Subscriber


class SubscriberDirectory(ABC):
    """Read access to subscriber records owned by billing ingestion."""

    @abstractmethod
    async def get_subscriber(self, user_id: str, subscriber_id: str) -> Subscriber | None:
        """Get a subscriber by ID within an account."""
        pass
