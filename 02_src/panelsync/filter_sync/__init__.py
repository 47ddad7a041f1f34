"""FilterSync module."""

from .sync import FilterSync

__all__ = ["FilterSync"]
