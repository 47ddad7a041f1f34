"""TypedChannel module."""

from .channel import ANY_TYPE, EventHandler, TypedChannel

__all__ = ["ANY_TYPE", "EventHandler", "TypedChannel"]
