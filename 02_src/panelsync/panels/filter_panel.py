"""Filter panel: a dashboard panel whose state is a FilterSync."""

from collections.abc import Mapping
from typing import Any

from ..errors import MisuseError
from ..event_bus import IEventBus
from ..filter_sync import FilterSync
from ..logging_config import get_logger
from ..models import FilterSet, SyncEvent

logger = get_logger(__name__)


class FilterPanel:
    """Panel editing the dashboard's filters, mirrored with other filter panels."""

    def __init__(
        self,
        panel_id: str,
        event_bus: IEventBus,
        *,
        initial: FilterSet | Mapping[str, Any] | None = None,
        sync_enabled: bool = True,
    ):
        self._panel_id = panel_id
        self._event_bus = event_bus
        self._initial = initial
        self._sync_enabled = sync_enabled
        self._sync: FilterSync | None = None

    @property
    def panel_id(self) -> str:
        return self._panel_id

    @property
    def running(self) -> bool:
        return self._sync is not None

    @property
    def sync(self) -> FilterSync:
        if self._sync is None:
            raise MisuseError(f"Panel {self._panel_id} not started")
        return self._sync

    @property
    def filters(self) -> FilterSet:
        return self._sync.filters if self._sync else FilterSet()

    @property
    def sync_enabled(self) -> bool:
        return self._sync_enabled

    async def start(self) -> None:
        if self._sync is not None:
            return
        self._sync = FilterSync(
            self._event_bus,
            self._panel_id,
            initial=self._initial,
            sync_enabled=self._sync_enabled,
        )
        logger.info("Panel %s started (filters, sync=%s)", self._panel_id, self._sync_enabled)

    async def stop(self) -> None:
        if self._sync is None:
            return
        self._sync.close()
        self._sync = None
        logger.info("Panel %s stopped", self._panel_id)

    def change_property(self, changes: Mapping[str, Any]) -> FilterSet:
        return self.sync.change_property(changes)

    def change_geographic(self, changes: Mapping[str, Any]) -> FilterSet:
        return self.sync.change_geographic(changes)

    def apply(self) -> SyncEvent | None:
        return self.sync.apply_filters()

    def clear_filters(self) -> SyncEvent | None:
        return self.sync.clear_filters()

    def clear(self) -> None:
        if self._sync is not None:
            self._sync.reset()

    def set_sync_enabled(self, enabled: bool) -> None:
        self._sync_enabled = enabled
        if self._sync is not None:
            self._sync.set_sync_enabled(enabled)
