"""EventBus module."""

from .dispatcher import Dispatcher
from .event_bus import EventBus, IEventBus, SubscriptionHandle
from .history import HistoryBuffer
from .registry import Subscriber, Subscription, SubscriptionRegistry
from .sequence import SequenceAllocator

__all__ = [
    "EventBus",
    "IEventBus",
    "SubscriptionHandle",
    "Dispatcher",
    "HistoryBuffer",
    "SequenceAllocator",
    "Subscriber",
    "Subscription",
    "SubscriptionRegistry",
]
