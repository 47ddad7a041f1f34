"""In-memory entity catalog used as the demo loader."""

import asyncio

from panelsync.models import Entity, EntityRef

SAMPLE_ENTITIES = [
    Entity(
        id="06",
        type="state",
        name="California",
        properties={"population": 39_029_342},
        children=(EntityRef("06075", "county"), EntityRef("06037", "county")),
    ),
    Entity(
        id="48",
        type="state",
        name="Texas",
        properties={"population": 30_029_572},
        children=(EntityRef("48201", "county"),),
    ),
    Entity(
        id="06075",
        type="county",
        name="San Francisco County",
        properties={"population": 808_437, "totalProperties": 412},
        parent=EntityRef("06", "state"),
    ),
    Entity(
        id="06037",
        type="county",
        name="Los Angeles County",
        properties={"population": 9_721_138, "totalProperties": 1_893},
        parent=EntityRef("06", "state"),
    ),
    Entity(
        id="48201",
        type="county",
        name="Harris County",
        properties={"population": 4_780_913, "totalProperties": 977},
        parent=EntityRef("48", "state"),
    ),
    Entity(
        id="prop-001",
        type="property",
        name="1 Market St",
        properties={"price": 1_250_000, "status": "active"},
        parent=EntityRef("06075", "county"),
    ),
]


class InMemoryCatalog:
    """Async loader over a fixed set of entities."""

    def __init__(self, entities: list[Entity] | None = None, latency: float = 0.0):
        self._entities = {
            (e.id, e.type): e for e in (SAMPLE_ENTITIES if entities is None else entities)
        }
        self._latency = latency
        self.calls: list[tuple[str, str]] = []

    async def load(self, entity_id: str, entity_type: str) -> Entity | None:
        """Fetch one entity, or None when unknown."""
        self.calls.append((entity_id, entity_type))
        if self._latency:
            await asyncio.sleep(self._latency)
        return self._entities.get((entity_id, entity_type))

    async def children(self, parent_id: str, parent_type: str) -> list[Entity]:
        """Fetch the entities whose parent is (parent_id, parent_type)."""
        if self._latency:
            await asyncio.sleep(self._latency)
        parent = EntityRef(parent_id, parent_type)
        return [e for e in self._entities.values() if e.parent == parent]
