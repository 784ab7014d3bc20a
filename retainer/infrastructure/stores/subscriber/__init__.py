"""SubscriberDirectory for subscriber lookups."""

from retainer.infrastructure.stores.subscriber.inmemory import InMemorySubscriberDirectory
from retainer.infrastructure.stores.subscriber.interface import SubscriberDirectory

__all__ = [
    "SubscriberDirectory",
    "InMemorySubscriberDirectory",
]
