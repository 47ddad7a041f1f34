"""panelsync: event bus and entity synchronization for dashboard panels."""

from .app import Application, IApplication
from .channel import ANY_TYPE, TypedChannel
from .config import BusConfig
from .entity_sync import ChildrenLoader, EntityLoader, EntitySync
from .filter_sync import FilterSync
from .errors import (
    InvalidPriorityError,
    LoadError,
    MisuseError,
    PanelSyncError,
    SubscriberError,
)
from .event_bus import EventBus, IEventBus, SubscriptionHandle
from .models import (
    FILTER,
    FILTER_CLEARED,
    SELECT,
    Entity,
    EntityRef,
    EventDraft,
    FilterSet,
    Priority,
    SelectionPayload,
    SyncEvent,
    SyncStatus,
    entity_selected,
    entity_updated,
)
from .panels import EntityPanel, FilterPanel, IPanel, PanelLayer

__all__ = [
    # Application
    "Application",
    "IApplication",
    "BusConfig",
    # Models
    "Priority",
    "EventDraft",
    "SyncEvent",
    "SelectionPayload",
    "Entity",
    "EntityRef",
    "SyncStatus",
    "SELECT",
    "entity_selected",
    "entity_updated",
    "FilterSet",
    "FILTER",
    "FILTER_CLEARED",
    # Errors
    "PanelSyncError",
    "SubscriberError",
    "LoadError",
    "MisuseError",
    "InvalidPriorityError",
    # Components
    "IEventBus",
    "EventBus",
    "SubscriptionHandle",
    "ANY_TYPE",
    "TypedChannel",
    "EntityLoader",
    "ChildrenLoader",
    "EntitySync",
    "FilterSync",
    "IPanel",
    "EntityPanel",
    "FilterPanel",
    "PanelLayer",
]
