"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def event_bus():
    """Create EventBus with default config."""
    from panelsync.config import BusConfig
    from panelsync.event_bus import EventBus

    eb = EventBus(BusConfig())
    yield eb
    eb.shutdown()


@pytest.fixture
def make_entity():
    """Factory for Entity values."""
    from panelsync.models import Entity

    def _make(entity_id: str = "06075", entity_type: str = "county", **kwargs):
        kwargs.setdefault("name", f"{entity_type} {entity_id}")
        return Entity(id=entity_id, type=entity_type, **kwargs)

    return _make


@pytest.fixture
def loader(make_entity):
    """AsyncMock loader returning an Entity for any (id, type)."""

    async def _load(entity_id: str, entity_type: str):
        return make_entity(entity_id, entity_type)

    return AsyncMock(side_effect=_load)


@pytest.fixture
def catalog():
    """In-memory catalog with sample states, counties and properties."""
    from sim.catalog import InMemoryCatalog

    return InMemoryCatalog()


@pytest_asyncio.fixture
async def application():
    """Create and start an Application with a small history."""
    from panelsync.app import Application
    from panelsync.config import BusConfig

    app = Application(BusConfig(history_limit=10))
    await app.start()
    yield app
    await app.stop()
