"""Filter-related data models."""

import builtins
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Filter events: `filter` carries {"filters": FilterSet}, `filterCleared` carries {}
FILTER = "filter"
FILTER_CLEARED = "filterCleared"


@dataclass(frozen=True)
class FilterSet:
    """
    Active filters shared between panels.

    `property` holds listing criteria (propertyType, priceRange, bedrooms,
    ...), `geographic` holds location criteria (state, county, city,
    zipCode). Both are open mappings; values are passed through untouched.
    """

    property: dict = field(default_factory=dict)
    geographic: dict = field(default_factory=dict)

    @builtins.property
    def is_empty(self) -> bool:
        return not self.property and not self.geographic

    def with_property(self, changes: Mapping[str, Any]) -> "FilterSet":
        """New set with `changes` merged into the property filters."""
        return FilterSet(
            property={**self.property, **changes},
            geographic=dict(self.geographic),
        )

    def with_geographic(self, changes: Mapping[str, Any]) -> "FilterSet":
        """New set with `changes` merged into the geographic filters."""
        return FilterSet(
            property=dict(self.property),
            geographic={**self.geographic, **changes},
        )

    def to_dict(self) -> dict:
        return {"property": dict(self.property), "geographic": dict(self.geographic)}

    @classmethod
    def from_value(cls, value: Any) -> "FilterSet | None":
        """Read a FilterSet or a {"property": ..., "geographic": ...} mapping."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            return None
        return cls(
            property=dict(value.get("property") or {}),
            geographic=dict(value.get("geographic") or {}),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "FilterSet | None":
        """Read the filters out of a `filter` event payload."""
        if not isinstance(payload, Mapping) or "filters" not in payload:
            return None
        return cls.from_value(payload["filters"])
