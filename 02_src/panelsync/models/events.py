"""Event-related data models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..errors import InvalidPriorityError


class Priority(str, Enum):
    """Delivery priority class of an event."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank: lower is delivered first."""
        return _PRIORITY_RANK[self]

    @classmethod
    def coerce(cls, value: "Priority | str") -> "Priority":
        """Return value as a Priority, rejecting unknown names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidPriorityError(
                f"Unknown priority {value!r}; expected one of "
                f"{', '.join(p.value for p in cls)}"
            ) from None


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.NORMAL: 1, Priority.LOW: 2}


class EntityAction(str, Enum):
    """Action tag of a reserved entity event type."""

    SELECTED = "selected"
    UPDATED = "updated"


# Generic selection event: "the user picked X" with a SelectionPayload
SELECT = "select"

ENTITY_EVENT_PREFIX = "entity_"


def entity_selected(kind: str) -> str:
    """Event type announcing that an entity of `kind` was selected."""
    return f"{ENTITY_EVENT_PREFIX}{EntityAction.SELECTED.value}_{kind}"


def entity_updated(kind: str) -> str:
    """Event type announcing that an entity of `kind` was updated."""
    return f"{ENTITY_EVENT_PREFIX}{EntityAction.UPDATED.value}_{kind}"


def parse_entity_event(event_type: str) -> tuple[EntityAction, str] | None:
    """Split `entity_<action>_<kind>` into (action, kind)."""
    if not event_type.startswith(ENTITY_EVENT_PREFIX):
        return None
    rest = event_type[len(ENTITY_EVENT_PREFIX):]
    for action in EntityAction:
        prefix = f"{action.value}_"
        if rest.startswith(prefix) and len(rest) > len(prefix):
            return action, rest[len(prefix):]
    return None


@dataclass(frozen=True)
class EventDraft:
    """An event as handed to broadcast, before sequencing and timestamping."""

    type: str
    payload: Any = None
    source: str = ""
    priority: Priority = Priority.NORMAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "priority", Priority.coerce(self.priority))


@dataclass(frozen=True)
class SyncEvent:
    """An immutable event delivered through EventBus."""

    type: str
    payload: Any
    source: str  # identity of the consumer that broadcast it
    timestamp: datetime
    sequence_id: int
    priority: Priority = Priority.NORMAL

    @property
    def delivery_key(self) -> tuple[int, int]:
        """Priority rank first, then FIFO by sequence id."""
        return self.priority.rank, self.sequence_id


@dataclass(frozen=True)
class SelectionPayload:
    """Payload of a generic `select` event."""

    entity_id: str
    entity_type: str
    properties: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "SelectionPayload | None":
        """Read a selection from a dataclass or a camelCase/snake_case mapping."""
        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, Mapping):
            return None

        entity_id = payload.get("entity_id", payload.get("entityId"))
        entity_type = payload.get("entity_type", payload.get("entityType"))
        if entity_id is None or entity_type is None:
            return None

        return cls(
            entity_id=str(entity_id),
            entity_type=str(entity_type),
            properties=dict(payload.get("properties") or {}),
        )
