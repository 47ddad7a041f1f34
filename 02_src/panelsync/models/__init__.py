"""Core data models for panelsync."""

from .events import (
    SELECT,
    EntityAction,
    EventDraft,
    Priority,
    SelectionPayload,
    SyncEvent,
    entity_selected,
    entity_updated,
    parse_entity_event,
)
from .entities import Entity, EntityRef, SyncStatus
from .filters import FILTER, FILTER_CLEARED, FilterSet

__all__ = [
    # Events
    "Priority",
    "EventDraft",
    "SyncEvent",
    "SelectionPayload",
    "EntityAction",
    "SELECT",
    "entity_selected",
    "entity_updated",
    "parse_entity_event",
    # Entities
    "Entity",
    "EntityRef",
    "SyncStatus",
    # Filters
    "FilterSet",
    "FILTER",
    "FILTER_CLEARED",
]
