"""Entity panel: a dashboard panel whose state is an EntitySync."""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from ..entity_sync import ChildrenLoader, EntityLoader, EntitySync
from ..errors import MisuseError
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import SELECT, Entity, Priority, SelectionPayload, SyncEvent

logger = get_logger(__name__)


class IPanel(Protocol):
    """A single dashboard panel."""

    @property
    def panel_id(self) -> str:
        """Panel identifier, used as its bus identity."""
        ...

    async def start(self) -> None:
        """Attach to the EventBus."""
        ...

    async def stop(self) -> None:
        """Detach from the EventBus and drop local state."""
        ...

    def clear(self) -> None:
        """Drop local state without broadcasting; subscriptions stay."""
        ...


class EntityPanel:
    """Panel showing one entity kept in sync with the other panels."""

    def __init__(
        self,
        panel_id: str,
        event_bus: IEventBus,
        loader: EntityLoader,
        *,
        sync_types: Iterable[str] = (),
        follow_selections: Iterable[str] = (),
        parent_type: str | None = None,
        children_loader: ChildrenLoader | None = None,
        sync_enabled: bool = True,
    ):
        self._panel_id = panel_id
        self._event_bus = event_bus
        self._loader = loader
        self._sync_types = tuple(sync_types)
        self._follow_selections = tuple(follow_selections)
        self._parent_type = parent_type
        self._children_loader = children_loader
        self._sync_enabled = sync_enabled
        self._sync: EntitySync | None = None

    @property
    def panel_id(self) -> str:
        return self._panel_id

    @property
    def running(self) -> bool:
        return self._sync is not None

    @property
    def sync(self) -> EntitySync:
        if self._sync is None:
            raise MisuseError(f"Panel {self._panel_id} not started")
        return self._sync

    @property
    def entity(self) -> Entity | None:
        return self._sync.entity if self._sync else None

    async def start(self) -> None:
        """Create the EntitySync (subscribes for the panel's lifetime)."""
        if self._sync is not None:
            return
        self._sync = EntitySync(
            self._event_bus,
            self._panel_id,
            self._loader,
            sync_types=self._sync_types,
            follow_selections=self._follow_selections,
            parent_type=self._parent_type,
            children_loader=self._children_loader,
            sync_enabled=self._sync_enabled,
        )
        logger.info(
            "Panel %s started (sync=%s, follows=%s)",
            self._panel_id,
            ",".join(self._sync_types) or "-",
            ",".join(self._follow_selections) or "-",
        )

    async def stop(self) -> None:
        """Tear down the EntitySync; the held entity is destroyed."""
        if self._sync is None:
            return
        self._sync.close()
        self._sync = None
        logger.info("Panel %s stopped", self._panel_id)

    async def select(self, entity_id: str, entity_type: str, **opts: Any) -> Entity | None:
        return await self.sync.select_entity(entity_id, entity_type, **opts)

    def update(self, fields: Mapping[str, Any]) -> Entity | None:
        return self.sync.update_entity(fields)

    def clear(self) -> None:
        if self._sync is not None:
            self._sync.clear_entity()

    @property
    def sync_enabled(self) -> bool:
        return self._sync_enabled

    def set_sync_enabled(self, enabled: bool) -> None:
        """Toggle sending and receiving entity events; survives restarts."""
        self._sync_enabled = enabled
        if self._sync is not None:
            self._sync.set_sync_enabled(enabled)

    def broadcast_selection(
        self,
        entity_id: str,
        entity_type: str,
        properties: Mapping[str, Any] | None = None,
        priority: Priority | str = Priority.NORMAL,
    ) -> SyncEvent | None:
        """Announce a user pick (e.g. a map click) as a generic `select` event."""
        payload = SelectionPayload(
            entity_id=entity_id,
            entity_type=entity_type,
            properties=dict(properties or {}),
        )
        return self.sync.channel.broadcast_typed(SELECT, payload, priority)
