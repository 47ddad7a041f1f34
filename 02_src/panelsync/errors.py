"""Error taxonomy for the panel synchronization subsystem."""

from typing import Any


class PanelSyncError(Exception):
    """Base class for panelsync errors."""


class SubscriberError(PanelSyncError):
    """A subscriber callback raised while an event was being delivered."""

    def __init__(self, subscription_id: str, event: Any, cause: BaseException):
        self.subscription_id = subscription_id
        self.event = event
        self.cause = cause
        super().__init__(
            f"Subscriber {subscription_id} failed on {event.type!r} "
            f"event #{event.sequence_id}: {cause!r}"
        )


class LoadError(PanelSyncError):
    """The injected loader failed or found nothing."""

    def __init__(
        self,
        entity_id: str,
        entity_type: str,
        cause: BaseException | None = None,
    ):
        self.entity_id = entity_id
        self.entity_type = entity_type
        self.cause = cause
        reason = repr(cause) if cause is not None else "not found"
        super().__init__(f"Failed to load {entity_type} {entity_id}: {reason}")


class MisuseError(PanelSyncError):
    """An operation was called in a state where it cannot apply."""


class InvalidPriorityError(PanelSyncError, ValueError):
    """An event priority outside high/normal/low."""
