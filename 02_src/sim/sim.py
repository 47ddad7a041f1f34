"""SIM implementation - scripted multi-panel scenario."""

import asyncio
from typing import Protocol

from panelsync.app import Application
from panelsync.config import BusConfig
from panelsync.logging_config import get_logger
from panelsync.models import SyncEvent
from panelsync.panels import EntityPanel

from .catalog import InMemoryCatalog

logger = get_logger(__name__)


class ISim(Protocol):
    """Drive a dashboard through a scripted scenario."""

    async def run(self) -> dict:
        """Run the scenario and return a summary."""
        ...


class Sim:
    """
    Three panels on one bus:

    - map: broadcasts raw `select` picks (state, then county)
    - county: follows county picks within the selected state, syncs counties
    - detail: mirrors county selections/updates made by other panels
    """

    def __init__(
        self,
        config: BusConfig | None = None,
        catalog: InMemoryCatalog | None = None,
    ):
        self._config = config or BusConfig(history_limit=50)
        self._catalog = catalog or InMemoryCatalog()
        self._received: list[SyncEvent] = []

    async def run(self) -> dict:
        """Run the scripted scenario."""
        app = Application(self._config)
        await app.start()
        try:
            bus = app.bus
            bus.subscribe(self._received.append)

            map_panel = await app.register_panel(
                EntityPanel("map", bus, self._catalog.load)
            )
            county_panel = await app.register_panel(
                EntityPanel(
                    "county",
                    bus,
                    self._catalog.load,
                    sync_types=("county",),
                    follow_selections=("county",),
                    parent_type="state",
                    children_loader=self._catalog.children,
                )
            )
            detail_panel = await app.register_panel(
                EntityPanel("detail", bus, self._catalog.load, sync_types=("county",))
            )

            # User clicks California, then San Francisco on the map
            map_panel.broadcast_selection("06", "state")
            await bus.join()
            map_panel.broadcast_selection("06075", "county", {"stateId": "06"})
            await bus.join()

            # County panel annotates the county; detail panel sees the update
            county_panel.update({"lastViewed": "sim"})
            await bus.join()

            # County panel selects another county explicitly
            await county_panel.select("06037", "county", parent_id="06", parent_type="state")
            await bus.join()

            summary = {
                "county": county_panel.entity.id if county_panel.entity else None,
                "county_children": [c.id for c in county_panel.sync.children],
                "detail": detail_panel.entity.id if detail_panel.entity else None,
                "events": [e.type for e in self._received],
                "history": len(bus.history()),
                "loader_calls": list(self._catalog.calls),
            }
            logger.info("SIM: scenario complete", extra={"context": summary})
            return summary
        finally:
            await app.stop()


def run_sim(config: BusConfig | None = None) -> dict:
    """Run the scenario on a fresh event loop."""
    return asyncio.run(Sim(config).run())
