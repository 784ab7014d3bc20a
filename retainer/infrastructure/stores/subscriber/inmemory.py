"""In-memory implementation of SubscriberDirectory."""

from retainer.domain.situation import Subscriber
from retainer.infrastructure.stores.subscriber.interface import SubscriberDirectory


class InMemorySubscriberDirectory(SubscriberDirectory):
    """In-memory implementation of SubscriberDirectory for testing and development."""

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        """Initialize storage, optionally seeded."""
        self._subscribers: dict[str, Subscriber] = {}
        for subscriber in subscribers or []:
            self.add_subscriber(subscriber)

    def add_subscriber(self, subscriber: Subscriber) -> None:
        """Add or replace a subscriber record."""
        self._subscribers[subscriber.id] = subscriber

    async def get_subscriber(self, user_id: str, subscriber_id: str) -> Subscriber | None:
        """Get a subscriber by ID within an account."""
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber and subscriber.user_id == user_id:
            return subscriber
        return None
