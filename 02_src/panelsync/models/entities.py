"""Entity-related data models."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any


class SyncStatus(str, Enum):
    """Load state of an EntitySync instance."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


@dataclass(frozen=True)
class EntityRef:
    """Address of an entity: id plus kind."""

    id: str
    type: str

    @classmethod
    def from_value(cls, value: "EntityRef | Mapping") -> "EntityRef":
        if isinstance(value, cls):
            return value
        return cls(id=str(value["id"]), type=str(value["type"]))


_IMMUTABLE_FIELDS = {"id", "type"}


@dataclass(frozen=True)
class Entity:
    """A domain record (state, county, property, ...) synchronized across panels."""

    id: str
    type: str
    name: str = ""
    properties: dict = field(default_factory=dict)
    parent: EntityRef | None = None
    children: tuple[EntityRef, ...] = ()
    last_updated: datetime | None = None

    @property
    def ref(self) -> EntityRef:
        return EntityRef(id=self.id, type=self.type)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Entity":
        """Build an Entity from a loader's mapping; unknown keys go to properties."""
        known = {f.name for f in fields(cls)}
        properties = dict(data.get("properties") or {})
        properties.update({k: v for k, v in data.items() if k not in known})

        parent = data.get("parent")
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            name=str(data.get("name", "")),
            properties=properties,
            parent=EntityRef.from_value(parent) if parent else None,
            children=tuple(EntityRef.from_value(c) for c in data.get("children") or ()),
            last_updated=data.get("last_updated"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "properties": dict(self.properties),
            "parent": (
                {"id": self.parent.id, "type": self.parent.type}
                if self.parent
                else None
            ),
            "children": [{"id": c.id, "type": c.type} for c in self.children],
            "last_updated": (
                self.last_updated.isoformat() if self.last_updated else None
            ),
        }

    def copy(self) -> "Entity":
        """Same value with its own properties dict."""
        return replace(self, properties=dict(self.properties))

    def merged(self, updates: Mapping[str, Any]) -> "Entity":
        """
        Return a new Entity with `updates` applied.

        Keys naming Entity fields replace them; any other key is merged into
        `properties`. `id` and `type` can not be changed.
        """
        changed = sorted(
            k
            for k in _IMMUTABLE_FIELDS
            if k in updates and updates[k] != getattr(self, k)
        )
        if changed:
            raise ValueError(f"Entity fields {changed} are immutable")

        known = {f.name for f in fields(self)}
        properties = dict(self.properties)
        if "properties" in updates:
            properties = dict(updates["properties"] or {})
        properties.update({k: v for k, v in updates.items() if k not in known})

        values: dict[str, Any] = {"properties": properties}
        if "name" in updates:
            values["name"] = str(updates["name"])
        if "parent" in updates:
            parent = updates["parent"]
            values["parent"] = EntityRef.from_value(parent) if parent else None
        if "children" in updates:
            values["children"] = tuple(
                EntityRef.from_value(c) for c in updates["children"] or ()
            )
        if "last_updated" in updates:
            values["last_updated"] = updates["last_updated"]
        return replace(self, **values)

    def merged_with(self, other: "Entity") -> "Entity":
        """
        Apply a received full copy of the same entity over this one.

        The sender's name, properties and children win, so a cleared name or
        a removed property key propagates. The parent link is local scope and
        is only replaced when the sender has one.
        """
        return replace(
            self,
            name=other.name,
            properties=dict(other.properties),
            parent=other.parent or self.parent,
            children=other.children,
            last_updated=other.last_updated or self.last_updated,
        )

    def with_parent(self, parent_id: str, parent_type: str) -> "Entity":
        return replace(
            self,
            properties=dict(self.properties),
            parent=EntityRef(id=parent_id, type=parent_type),
        )

    def stamped(self, when: datetime) -> "Entity":
        return replace(self, properties=dict(self.properties), last_updated=when)
