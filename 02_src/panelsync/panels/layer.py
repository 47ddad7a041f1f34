"""PanelLayer implementation."""

from typing import Protocol

from ..errors import MisuseError
from ..logging_config import get_logger
from .entity_panel import IPanel

logger = get_logger(__name__)


class IPanelLayer(Protocol):
    """Managing panel lifecycle."""

    async def start(self) -> None:
        """Start all registered panels."""
        ...

    async def stop(self) -> None:
        """Stop all panels."""
        ...

    async def register_panel(self, panel: IPanel) -> None:
        """Register a panel."""
        ...


class PanelLayer:
    """Manages the panels of one dashboard."""

    def __init__(self) -> None:
        self._panels: dict[str, IPanel] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def register_panel(self, panel: IPanel) -> None:
        """Register a panel; started immediately if the layer is running."""
        if panel.panel_id in self._panels:
            raise MisuseError(f"Panel {panel.panel_id!r} already registered")
        self._panels[panel.panel_id] = panel
        if self._running:
            await panel.start()

    async def unregister_panel(self, panel_id: str) -> IPanel | None:
        """Stop and forget a panel."""
        panel = self._panels.pop(panel_id, None)
        if panel is not None:
            await panel.stop()
        return panel

    def get_panel(self, panel_id: str) -> IPanel | None:
        return self._panels.get(panel_id)

    def panels(self) -> list[IPanel]:
        return list(self._panels.values())

    async def start(self) -> None:
        """Start all registered panels."""
        self._running = True
        for panel in self._panels.values():
            await panel.start()

    async def stop(self) -> None:
        """Stop all panels, most recently registered first."""
        self._running = False
        for panel in reversed(list(self._panels.values())):
            try:
                await panel.stop()
            except Exception as e:
                logger.error(
                    "Error stopping panel %s: %s", panel.panel_id, e, exc_info=True
                )
