"""Tests for the scripted SIM scenario."""

import pytest

from panelsync.models import SELECT, entity_selected, entity_updated
from sim import InMemoryCatalog, Sim


@pytest.mark.asyncio
async def test_sim_scenario():
    """Test the map -> county -> detail flow end to end."""
    catalog = InMemoryCatalog()

    summary = await Sim(catalog=catalog).run()

    assert summary["county"] == "06037"
    assert summary["county_children"] == ["06075", "06037"]
    assert summary["detail"] == "06037"
    assert summary["events"] == [
        SELECT,
        SELECT,
        entity_updated("county"),
        entity_selected("county"),
    ]
    assert summary["history"] == 4
    assert summary["loader_calls"] == [("06075", "county"), ("06037", "county")]


@pytest.mark.asyncio
async def test_catalog_children():
    """Test the catalog lists children by parent."""
    catalog = InMemoryCatalog()

    counties = await catalog.children("48", "state")

    assert [c.id for c in counties] == ["48201"]
    assert await catalog.load("nope", "county") is None
