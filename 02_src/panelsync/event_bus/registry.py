"""Subscription registry."""

import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..models import SyncEvent

Subscriber = Callable[[SyncEvent], Awaitable[None] | None]


@dataclass
class Subscription:
    """A registered subscriber callback."""

    id: str
    callback: Subscriber
    active: bool = True


class SubscriptionRegistry:
    """Maps subscription id to Subscription; safe to mutate while delivering."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}

    def add(self, callback: Subscriber) -> Subscription:
        """Register an active subscription under a fresh id."""
        subscription = Subscription(id=uuid.uuid4().hex, callback=callback)
        self._subscriptions[subscription.id] = subscription
        return subscription

    def remove(self, subscription_id: str) -> bool:
        """Deactivate, then drop. Returns False if it was already gone."""
        subscription = self._subscriptions.get(subscription_id)
        if subscription is None:
            return False
        # Deactivate first so an in-flight snapshot skips it
        subscription.active = False
        del self._subscriptions[subscription_id]
        return True

    def get(self, subscription_id: str) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def snapshot(self) -> list[Subscription]:
        """Copy of current subscriptions, in registration order."""
        return list(self._subscriptions.values())

    def active_count(self) -> int:
        return sum(1 for s in self._subscriptions.values() if s.active)

    def clear(self) -> None:
        for subscription in self._subscriptions.values():
            subscription.active = False
        self._subscriptions.clear()

    def __len__(self) -> int:
        return len(self._subscriptions)
