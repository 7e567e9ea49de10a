"""
Tests for the cascading location pickers.
"""

import asyncio

import pytest

from onboarding.cascade import LocationCascade
from onboarding.errors import AmbiguousOrMissing, InvalidTransition
from onboarding.locations import Level, LocationDirectory


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


class GatedDirectory(LocationDirectory):
    """Blocks lookups for one level until the test opens the gate."""

    def __init__(self, store, gated_level: Level):
        super().__init__(store)
        self.gated_level = gated_level
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def list_children(self, parent_id, level):
        if level == self.gated_level:
            self.entered.set()
            await self.gate.wait()
        return await super().list_children(parent_id, level)


async def _walk_to_ward(cascade: LocationCascade):
    for level, name in [
        (Level.REGION, "Central"),
        (Level.SUB_REGION, "East"),
        (Level.LGA, "Kup"),
        (Level.WARD, "Ward3"),
    ]:
        await cascade.load_options(level)
        cascade.select(level, cascade.find_option(level, name))


class TestCascade:

    def test_walk_down(self, directory):
        cascade = LocationCascade(directory)
        _run(_walk_to_ward(cascade))
        assert [cascade.selected[lv].id for lv in Level] == ["r1", "sr1", "l1", "w1"]

    def test_child_requires_parent(self, directory):
        cascade = LocationCascade(directory)
        with pytest.raises(InvalidTransition):
            _run(cascade.load_options(Level.SUB_REGION))

    def test_changing_region_clears_deeper_selections_and_options(self, directory):
        cascade = LocationCascade(directory)
        _run(_walk_to_ward(cascade))

        highlands = cascade.find_option(Level.REGION, "Highlands")
        cascade.select(Level.REGION, highlands)

        assert set(cascade.selected) == {Level.REGION}
        assert set(cascade.options) == {Level.REGION}

    def test_find_option_unknown_name(self, directory):
        cascade = LocationCascade(directory)
        _run(cascade.load_options(Level.REGION))
        with pytest.raises(AmbiguousOrMissing):
            cascade.find_option(Level.REGION, "Atlantis")

    def test_find_option_rejects_unit_from_other_parent(self, directory):
        cascade = LocationCascade(directory)

        async def scenario():
            await cascade.load_options(Level.REGION)
            cascade.select(Level.REGION, cascade.find_option(Level.REGION, "Highlands"))
            return await directory.list_children("r1", Level.SUB_REGION)

        central_subregions = _run(scenario())
        with pytest.raises(InvalidTransition):
            cascade.find_option(Level.SUB_REGION, central_subregions[0])

    def test_stale_result_is_discarded(self, store):
        async def scenario():
            directory = GatedDirectory(store, Level.SUB_REGION)
            cascade = LocationCascade(directory)
            await cascade.load_options(Level.REGION)
            cascade.select(Level.REGION, cascade.find_option(Level.REGION, "Central"))

            pending = asyncio.create_task(cascade.load_options(Level.SUB_REGION))
            await directory.entered.wait()

            # User switches region while Central's sub-regions are in flight
            cascade.select(Level.REGION, cascade.find_option(Level.REGION, "Highlands"))
            directory.gate.set()
            return await pending, cascade

        result, cascade = _run(scenario())
        assert result is None
        assert Level.SUB_REGION not in cascade.options

    def test_result_applied_when_scope_unchanged(self, store):
        async def scenario():
            directory = GatedDirectory(store, Level.SUB_REGION)
            cascade = LocationCascade(directory)
            await cascade.load_options(Level.REGION)
            cascade.select(Level.REGION, cascade.find_option(Level.REGION, "Highlands"))

            pending = asyncio.create_task(cascade.load_options(Level.SUB_REGION))
            await directory.entered.wait()
            directory.gate.set()
            return await pending, cascade

        result, cascade = _run(scenario())
        assert [u.id for u in result] == ["sr3"]
        assert cascade.options[Level.SUB_REGION] == result

    def test_reset_keeps_region_options(self, directory):
        cascade = LocationCascade(directory)
        _run(_walk_to_ward(cascade))
        cascade.reset()
        assert cascade.selected == {}
        assert set(cascade.options) == {Level.REGION}
