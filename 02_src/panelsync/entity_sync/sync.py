"""EntitySync: one panel's view of a selected entity, kept in step over the bus."""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Awaitable

from ..channel import ANY_TYPE, TypedChannel
from ..errors import LoadError, MisuseError
from ..event_bus import IEventBus, SubscriptionHandle
from ..logging_config import event_context, get_logger
from ..models import (
    SELECT,
    Entity,
    EntityAction,
    EntityRef,
    Priority,
    SelectionPayload,
    SyncEvent,
    SyncStatus,
    entity_selected,
    entity_updated,
    parse_entity_event,
)
from .loader import ChildrenLoader, EntityLoader, as_entity

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EntitySync:
    """
    Loads, caches and synchronizes a single entity for one consumer.

    Outbound: select_entity() broadcasts `entity_selected_<type>`;
    update_entity() broadcasts `entity_updated_<type>` for kinds listed in
    `sync_types`.

    Inbound (events from other sources only):
      - `entity_selected_<k>`, k in sync_types: adopt the entity if nothing is
        held or the held entity is of kind k.
      - `entity_updated_<k>`, k in sync_types: merge if id and type match.
      - `select` of `parent_type`: change scope, drop a held entity from
        another parent, reload children.
      - `select` of a kind in follow_selections: fetch that entity.

    With sync disabled the instance neither broadcasts nor listens; it keeps
    working as a local loader. Load failures never raise; they land in `error`.
    """

    def __init__(
        self,
        bus: IEventBus,
        identity: str,
        loader: EntityLoader,
        *,
        sync_types: Iterable[str] = (),
        follow_selections: Iterable[str] = (),
        parent_type: str | None = None,
        children_loader: ChildrenLoader | None = None,
        sync_enabled: bool = True,
    ):
        self._channel = TypedChannel(bus, identity)
        self._loader = loader
        self._children_loader = children_loader
        self._sync_types = frozenset(sync_types)
        self._follow_selections = frozenset(follow_selections)
        self._parent_type = parent_type

        self._entity: Entity | None = None
        self._status = SyncStatus.IDLE
        self._error: LoadError | None = None
        self._scope: EntityRef | None = None
        self._children: tuple[Entity, ...] = ()
        self._children_loading = False

        # Bumped per request; a response for an older request is discarded
        self._request = 0
        self._children_request = 0
        self._closed = False

        self._sync_enabled = sync_enabled
        self._subscription: SubscriptionHandle | None = None
        if sync_enabled:
            self._listen()

    # State

    @property
    def identity(self) -> str:
        return self._channel.identity

    @property
    def channel(self) -> TypedChannel:
        return self._channel

    @property
    def entity(self) -> Entity | None:
        return self._entity

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def error(self) -> LoadError | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._status is SyncStatus.LOADING or self._children_loading

    @property
    def scope(self) -> EntityRef | None:
        return self._scope

    @property
    def children(self) -> tuple[Entity, ...]:
        return self._children

    @property
    def sync_types(self) -> frozenset[str]:
        return self._sync_types

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sync_enabled(self) -> bool:
        return self._sync_enabled

    def set_sync_enabled(self, enabled: bool) -> None:
        """Turn bus participation on or off; held state is kept either way."""
        if enabled == self._sync_enabled or self._closed:
            return
        self._sync_enabled = enabled
        if enabled:
            self._listen()
        elif self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        logger.debug(
            "%s: sync %s",
            self.identity,
            "enabled" if enabled else "disabled",
            extra=event_context(panel_id=self.identity),
        )

    # Operations

    async def fetch_entity(
        self,
        entity_id: str,
        entity_type: str,
        *,
        silent: bool = False,
        parent_id: str | None = None,
        parent_type: str | None = None,
    ) -> Entity | None:
        """Load an entity through the injected loader and hold it."""
        self._request += 1
        request = self._request
        if not silent:
            self._status = SyncStatus.LOADING

        try:
            entity = as_entity(await self._loader(entity_id, entity_type))
        except Exception as exc:
            return self._fail(request, LoadError(entity_id, entity_type, exc), silent)

        if entity is None:
            return self._fail(request, LoadError(entity_id, entity_type), silent)

        if parent_id is not None and parent_type is not None:
            entity = entity.with_parent(parent_id, parent_type)
        entity = entity.stamped(_now())

        if request != self._request:
            logger.debug(
                "%s: discarding stale %s %s response",
                self.identity,
                entity_type,
                entity_id,
            )
            return None

        self._entity = entity
        self._error = None
        self._status = SyncStatus.LOADED
        return entity

    async def select_entity(
        self,
        entity_id: str,
        entity_type: str,
        *,
        silent: bool = False,
        parent_id: str | None = None,
        parent_type: str | None = None,
        priority: Priority | str = Priority.NORMAL,
    ) -> Entity | None:
        """Fetch an entity and tell every other panel it was selected."""
        entity = await self.fetch_entity(
            entity_id,
            entity_type,
            silent=silent,
            parent_id=parent_id,
            parent_type=parent_type,
        )
        if entity is not None and self._sync_enabled:
            self._channel.broadcast_typed(
                entity_selected(entity.type), entity, priority
            )
        return entity

    def update_entity(self, fields: Mapping[str, Any]) -> Entity | None:
        """Merge fields into the held entity; broadcast if its kind is synced."""
        if self._entity is None:
            logger.warning(
                "%s",
                MisuseError(f"{self.identity}: update_entity with no entity loaded"),
            )
            return None

        try:
            updated = self._entity.merged(fields)
        except ValueError as exc:
            logger.warning("%s", MisuseError(f"{self.identity}: {exc}"))
            return None

        updated = updated.stamped(_now())
        self._entity = updated

        if self._sync_enabled and updated.type in self._sync_types:
            self._channel.broadcast_typed(entity_updated(updated.type), updated)
        return updated

    def clear_entity(self) -> None:
        """Drop the held entity and error; back to idle."""
        self._request += 1
        self._entity = None
        self._error = None
        self._status = SyncStatus.IDLE

    async def fetch_children(
        self,
        parent_id: str,
        parent_type: str,
        *,
        silent: bool = False,
    ) -> list[Entity]:
        """Load the entities under a parent (e.g. the counties of a state)."""
        if self._children_loader is None:
            logger.warning(
                "%s",
                MisuseError(f"{self.identity}: no children loader configured"),
            )
            return []

        self._children_request += 1
        request = self._children_request
        if not silent:
            self._children_loading = True

        try:
            results = await self._children_loader(parent_id, parent_type)
            children = tuple(
                _linked(as_entity(child), parent_id, parent_type)
                for child in results
            )
        except Exception as exc:
            if request == self._children_request:
                self._children_loading = False
                self._error = LoadError(parent_id, parent_type, exc)
                logger.warning("%s: %s", self.identity, self._error)
            return []

        if request != self._children_request:
            return []

        self._children_loading = False
        self._children = children
        return list(children)

    def close(self) -> None:
        """Teardown: revoke subscriptions and destroy held state."""
        if self._closed:
            return
        self._closed = True
        self._channel.close()
        self._subscription = None
        self._request += 1
        self._children_request += 1
        self._entity = None
        self._children = ()
        self._children_loading = False
        self._error = None
        self._status = SyncStatus.IDLE

    # Inbound events

    def _listen(self) -> None:
        self._subscription = self._channel.subscribe_to_type(ANY_TYPE, self._handle_event)

    def _fail(self, request: int, error: LoadError, silent: bool) -> None:
        if request != self._request:
            return None
        self._error = error
        if not silent:
            self._status = SyncStatus.ERRORED
        logger.warning(
            "%s: %s",
            self.identity,
            error,
            extra=event_context(
                panel_id=self.identity,
                entity_id=error.entity_id,
                entity_type=error.entity_type,
            ),
        )
        return None

    def _handle_event(self, event: SyncEvent) -> Awaitable[Any] | None:
        if event.source == self.identity:
            return None

        parsed = parse_entity_event(event.type)
        if parsed is not None:
            action, kind = parsed
            if kind in self._sync_types:
                self._apply_entity_event(action, kind, event)
            return None

        if event.type == SELECT:
            return self._handle_selection(event)
        return None

    def _apply_entity_event(
        self,
        action: EntityAction,
        kind: str,
        event: SyncEvent,
    ) -> None:
        try:
            received = as_entity(event.payload)
        except (TypeError, KeyError) as exc:
            logger.warning(
                "%s: malformed %r payload from %s: %s",
                self.identity,
                event.type,
                event.source,
                exc,
                extra=event_context(event, panel_id=self.identity),
            )
            return
        if received is None or received.type != kind:
            return

        held = self._entity
        if action is EntityAction.SELECTED:
            if held is None or held.type == kind:
                # A newer selection from elsewhere wins over an in-flight load
                self._request += 1
                self._entity = received.copy()
                self._error = None
                self._status = SyncStatus.LOADED
        elif action is EntityAction.UPDATED:
            if held is not None and held.id == received.id and held.type == received.type:
                self._entity = _apply_update(held, received, event.payload)

    def _handle_selection(self, event: SyncEvent) -> Awaitable[Any] | None:
        selection = SelectionPayload.from_payload(event.payload)
        if selection is None:
            return None

        kind = selection.entity_type
        if self._parent_type is not None and kind == self._parent_type:
            return self._enter_scope(EntityRef(id=selection.entity_id, type=kind))

        if kind in self._follow_selections:
            scope = self._scope
            return self.fetch_entity(
                selection.entity_id,
                kind,
                parent_id=scope.id if scope else None,
                parent_type=scope.type if scope else None,
            )
        return None

    def _enter_scope(self, scope: EntityRef) -> Awaitable[Any] | None:
        if scope == self._scope:
            return None

        self._scope = scope
        if self._entity is not None and self._entity.parent != scope:
            self.clear_entity()
        self._children = ()

        if self._children_loader is not None:
            return self.fetch_children(scope.id, scope.type)
        return None


def _apply_update(held: Entity, received: Entity, payload: Any) -> Entity:
    # A mapping payload carries only the fields its sender set
    if isinstance(payload, Mapping):
        return held.merged(
            {k: v for k, v in payload.items() if k not in ("id", "type")}
        )
    return held.merged_with(received)


def _linked(entity: Entity, parent_id: str, parent_type: str) -> Entity:
    if entity.parent is None:
        return entity.with_parent(parent_id, parent_type)
    return entity.copy()
