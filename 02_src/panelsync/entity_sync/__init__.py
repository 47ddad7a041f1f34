"""EntitySync module."""

from .loader import ChildrenLoader, EntityLoader, as_entity
from .sync import EntitySync

__all__ = ["EntitySync", "EntityLoader", "ChildrenLoader", "as_entity"]
