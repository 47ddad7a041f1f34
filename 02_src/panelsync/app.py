"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .config import BusConfig
from .event_bus import EventBus
from .logging_config import get_logger
from .panels import IPanel, PanelLayer

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset synchronized state between sessions."""
        ...


class Application:
    """Owns the dashboard's EventBus and its panels."""

    def __init__(self, config: BusConfig | None = None):
        self._config = config

        # Components (will be initialized in start())
        self._event_bus: EventBus | None = None
        self._panel_layer: PanelLayer | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. EventBus (no dependencies)
        config = self._config or BusConfig.from_env()
        self._event_bus = EventBus(config)
        logger.info(
            "EventBus initialized (history_limit=%d, debug_logging=%s)",
            config.history_limit,
            config.debug_logging,
        )

        # 2. PanelLayer (panels depend on the EventBus)
        self._panel_layer = PanelLayer()
        await self._panel_layer.start()
        logger.info("PanelLayer started")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._panel_layer:
            await self._panel_layer.stop()
        if self._event_bus:
            await self._event_bus.join()
            self._event_bus.shutdown()
            logger.info("EventBus shut down")

    async def reset(self) -> None:
        """Drop event history and every panel's local state; subscriptions stay."""
        if self._event_bus:
            await self._event_bus.join()
            self._event_bus.clear_history()
        if self._panel_layer:
            for panel in self._panel_layer.panels():
                panel.clear()
        logger.info("Reset complete")

    async def register_panel(self, panel: IPanel) -> IPanel:
        """Register a panel built against `self.bus`."""
        await self.panel_layer.register_panel(panel)
        return panel

    @property
    def bus(self) -> EventBus:
        """Get event bus instance."""
        if not self._event_bus:
            raise RuntimeError("Application not started")
        return self._event_bus

    @property
    def panel_layer(self) -> PanelLayer:
        """Get panel layer instance."""
        if not self._panel_layer:
            raise RuntimeError("Application not started")
        return self._panel_layer
