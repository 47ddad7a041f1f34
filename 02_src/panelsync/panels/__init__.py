"""Panels module."""

from .entity_panel import EntityPanel, IPanel
from .filter_panel import FilterPanel
from .layer import IPanelLayer, PanelLayer

__all__ = ["EntityPanel", "FilterPanel", "IPanel", "IPanelLayer", "PanelLayer"]
