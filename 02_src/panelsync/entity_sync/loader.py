"""Loader interfaces injected into EntitySync by the panel-content layer."""

from collections.abc import Iterable, Mapping
from typing import Any, Awaitable, Callable

from ..models import Entity

LoadResult = Entity | Mapping[str, Any] | None

# (entity_id, entity_type) -> entity, a mapping accepted by Entity.from_dict, or None
EntityLoader = Callable[[str, str], Awaitable[LoadResult]]

# (parent_id, parent_type) -> child entities
ChildrenLoader = Callable[[str, str], Awaitable[Iterable[Entity | Mapping[str, Any]]]]


def as_entity(value: Any) -> Entity | None:
    """Coerce a loader result or event payload to an Entity."""
    if value is None or isinstance(value, Entity):
        return value
    if isinstance(value, Mapping):
        return Entity.from_dict(value)
    raise TypeError(f"Expected Entity or mapping, got {type(value).__name__}")
