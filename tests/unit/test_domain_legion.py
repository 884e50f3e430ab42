"""Tests for the legion ledger operations."""

from __future__ import annotations

import copy

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gekokujo.domain import models as dm
from gekokujo.domain.enums import ErrorKind, OfficerArchetype
from gekokujo.domain.legion import (
    CreateLegionRequest,
    available_commanders,
    create_legion,
    disband_legion,
    update_legion_equipment,
    update_legion_soldiers,
    validate_legion_name,
)

ODA = dm.FactionID("oda")
TAKEDA = dm.FactionID("takeda")


def _officer(oid: str, name: str, faction: dm.FactionID = ODA) -> dm.Officer:
    return dm.Officer(
        id=dm.OfficerID(oid),
        name=name,
        archetype=OfficerArchetype.WARRIOR,
        martial=80,
        civil=50,
        faction_id=faction,
    )


def _world() -> dm.World:
    oda = dm.Faction(
        id=ODA,
        name="织田",
        leader_name="织田信长",
        code="c",
        idle_soldiers=1_000,
        rifles=50,
        horses=20,
        cannons=2,
    )
    takeda = dm.Faction(id=TAKEDA, name="武田", leader_name="武田信玄", code="t", idle_soldiers=500)
    world = dm.World(factions={oda.id: oda, takeda.id: takeda})
    for officer in (
        _officer("shibata", "柴田胜家"),
        _officer("niwa", "丹羽长秀"),
        _officer("baba", "马场信春", TAKEDA),
    ):
        world.officers[officer.id] = officer
    world.territories[dm.TerritoryID("owari")] = dm.Territory(
        id=dm.TerritoryID("owari"),
        province_name="尾张",
        district_name="爱知郡",
        castle_name="清洲城",
        castle_level=3,
        base_kokudaka=100_000,
        faction_id=ODA,
    )
    world.territories[dm.TerritoryID("kai")] = dm.Territory(
        id=dm.TerritoryID("kai"),
        province_name="甲斐",
        district_name="山梨郡",
        castle_name="踯躅崎馆",
        castle_level=3,
        base_kokudaka=90_000,
        faction_id=TAKEDA,
    )
    return world


def _request(**kwargs) -> CreateLegionRequest:
    defaults = {
        "name": "先锋队",
        "commander_id": dm.OfficerID("shibata"),
        "soldier_count": 300,
        "location_id": dm.TerritoryID("owari"),
    }
    defaults.update(kwargs)
    return CreateLegionRequest(**defaults)


def _holdings(world: dm.World, faction_id: dm.FactionID) -> tuple[int, int, int, int]:
    faction = world.factions[faction_id]
    legions = world.faction_legions(faction_id)
    return (
        faction.idle_soldiers + sum(legion.soldier_count for legion in legions),
        faction.rifles + sum(legion.rifles for legion in legions),
        faction.horses + sum(legion.horses for legion in legions),
        faction.cannons + sum(legion.cannons for legion in legions),
    )


def _create(world: dm.World, **kwargs) -> dm.Legion:
    result = create_legion(world, ODA, _request(**kwargs))
    assert result.success, result.error
    assert result.data is not None
    return result.data.legion


class TestNames:
    @pytest.mark.parametrize("name", ["先锋", "赤备", "一二三四五六七八", "  先锋  "])
    def test_accepts_chinese_names(self, name):
        assert validate_legion_name(name) is None

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_rejects_empty(self, name):
        error = validate_legion_name(name)
        assert error is not None
        assert error.message == "legion name cannot be empty"

    @pytest.mark.parametrize("name", ["Vanguard", "先锋1", "一二三四五六七八九", "先 锋"])
    def test_rejects_other_names(self, name):
        error = validate_legion_name(name)
        assert error is not None
        assert error.kind is ErrorKind.VALIDATION

    @given(st.text(alphabet=st.characters(min_codepoint=0x4E00, max_codepoint=0x9FA5), min_size=1, max_size=8))
    def test_any_short_ideograph_run_is_valid(self, name):
        assert validate_legion_name(name) is None


class TestCreate:
    def test_moves_resources_out_of_inventory(self):
        world = _world()

        legion = _create(world, rifles=10, horses=5, cannons=1)

        oda = world.factions[ODA]
        assert oda.idle_soldiers == 700
        assert (oda.rifles, oda.horses, oda.cannons) == (40, 15, 1)
        assert legion.location_name == "爱知郡"
        assert legion.commander_name == "柴田胜家"
        assert legion.id in oda.legion_ids
        commander = world.officers[dm.OfficerID("shibata")]
        assert commander.current_legion_id == legion.id
        assert not commander.is_idle

    def test_name_is_trimmed(self):
        legion = _create(_world(), name=" 先锋队 ")
        assert legion.name == "先锋队"

    @pytest.mark.parametrize(
        ("overrides", "kind"),
        [
            ({"name": "Vanguard"}, ErrorKind.VALIDATION),
            ({"soldier_count": 0}, ErrorKind.VALIDATION),
            ({"soldier_count": 1_001}, ErrorKind.INSUFFICIENT_RESOURCE),
            ({"rifles": -1}, ErrorKind.VALIDATION),
            ({"cannons": 3}, ErrorKind.INSUFFICIENT_RESOURCE),
            ({"commander_id": dm.OfficerID("baba")}, ErrorKind.NOT_FOUND),
            ({"commander_id": dm.OfficerID("ghost")}, ErrorKind.NOT_FOUND),
            ({"location_id": dm.TerritoryID("kai")}, ErrorKind.NOT_FOUND),
            ({"location_id": dm.TerritoryID("nowhere")}, ErrorKind.NOT_FOUND),
        ],
    )
    def test_rejections_leave_world_untouched(self, overrides, kind):
        world = _world()
        before = copy.deepcopy(world)

        result = create_legion(world, ODA, _request(**overrides))

        assert result.kind is kind
        assert world == before

    def test_unknown_faction(self):
        result = create_legion(_world(), dm.FactionID("nobody"), _request())
        assert result.kind is ErrorKind.NOT_FOUND

    def test_busy_commander_conflicts(self):
        world = _world()
        first = _create(world)
        before = copy.deepcopy(world)

        result = create_legion(world, ODA, _request(name="后备队", soldier_count=100))

        assert result.kind is ErrorKind.CONFLICT
        assert result.error is not None
        assert result.error.details["conflicting_legion_id"] == first.id
        assert result.error.details["conflicting_legion_name"] == "先锋队"
        assert world == before

    def test_force_reassign_disbands_previous_legion(self):
        world = _world()
        first = _create(world, rifles=10)

        result = create_legion(
            world, ODA, _request(name="后备队", soldier_count=100), force_reassign=True
        )

        assert result.success
        assert result.data is not None
        assert result.data.reassigned_from is not None
        assert result.data.reassigned_from.id == first.id
        assert first.id not in world.legions
        assert world.factions[ODA].idle_soldiers == 900
        assert world.factions[ODA].rifles == 50
        commander = world.officers[dm.OfficerID("shibata")]
        assert commander.current_legion_id == result.data.legion.id

    def test_force_reassign_still_validates_against_current_inventory(self):
        world = _world()
        _create(world, soldier_count=900)
        before = copy.deepcopy(world)

        result = create_legion(
            world, ODA, _request(name="后备队", soldier_count=500), force_reassign=True
        )

        assert result.kind is ErrorKind.INSUFFICIENT_RESOURCE
        assert world == before


class TestDisband:
    def test_returns_everything(self):
        world = _world()
        legion = _create(world, rifles=10, horses=5, cannons=1)
        world.territories[dm.TerritoryID("owari")].garrison_legion_id = legion.id

        result = disband_legion(world, ODA, legion.id)

        assert result.success
        assert result.data is not None
        assert result.data.returned.soldiers == 300
        oda = world.factions[ODA]
        assert (oda.idle_soldiers, oda.rifles, oda.horses, oda.cannons) == (1_000, 50, 20, 2)
        assert legion.id not in oda.legion_ids
        assert world.territories[dm.TerritoryID("owari")].garrison_legion_id is None
        commander = world.officers[dm.OfficerID("shibata")]
        assert commander.current_legion_id is None
        assert commander.is_idle

    def test_foreign_legion_is_not_found(self):
        world = _world()
        legion = _create(world)
        before = copy.deepcopy(world)

        result = disband_legion(world, TAKEDA, legion.id)

        assert result.kind is ErrorKind.NOT_FOUND
        assert world == before


class TestResize:
    def test_grow_and_shrink(self):
        world = _world()
        legion = _create(world)

        assert update_legion_soldiers(world, ODA, legion.id, 500).success
        assert world.factions[ODA].idle_soldiers == 500
        assert update_legion_soldiers(world, ODA, legion.id, 100).success
        assert world.factions[ODA].idle_soldiers == 900
        assert world.legions[legion.id].soldier_count == 100

    def test_zero_asks_for_disband(self):
        world = _world()
        legion = _create(world)

        result = update_legion_soldiers(world, ODA, legion.id, 0)

        assert result.kind is ErrorKind.STATE_GATE
        assert result.error is not None
        assert result.error.details["should_disband"] is True
        assert world.legions[legion.id].soldier_count == 300

    def test_growth_beyond_idle_pool(self):
        world = _world()
        legion = _create(world)
        before = copy.deepcopy(world)

        result = update_legion_soldiers(world, ODA, legion.id, 1_001)

        assert result.kind is ErrorKind.INSUFFICIENT_RESOURCE
        assert world == before


class TestEquipment:
    def test_adjusts_each_item(self):
        world = _world()
        legion = _create(world, rifles=10, horses=5)

        result = update_legion_equipment(world, ODA, legion.id, rifles=30, horses=0, cannons=2)

        assert result.success
        oda = world.factions[ODA]
        assert (oda.rifles, oda.horses, oda.cannons) == (20, 20, 0)
        assert (legion.rifles, legion.horses, legion.cannons) == (30, 0, 2)

    def test_single_shortfall_rejects_everything(self):
        world = _world()
        legion = _create(world)
        before = copy.deepcopy(world)

        result = update_legion_equipment(world, ODA, legion.id, rifles=10, horses=5, cannons=3)

        assert result.kind is ErrorKind.INSUFFICIENT_RESOURCE
        assert result.error is not None
        assert result.error.details["resource"] == "cannons"
        assert world == before

    def test_negative_counts(self):
        world = _world()
        legion = _create(world)
        result = update_legion_equipment(world, ODA, legion.id, rifles=-1, horses=0, cannons=0)
        assert result.kind is ErrorKind.VALIDATION


class TestInvariants:
    @settings(max_examples=60, deadline=None)
    @given(
        st.lists(
            st.tuples(
                st.sampled_from(["create", "resize", "equip", "disband"]),
                st.sampled_from(["shibata", "niwa"]),
                st.integers(min_value=-50, max_value=1_200),
                st.integers(min_value=-5, max_value=60),
            ),
            max_size=25,
        )
    )
    def test_holdings_are_conserved(self, steps):
        world = _world()
        expected = _holdings(world, ODA)

        for action, officer, count, gear in steps:
            commanded = world.legion_commanded_by(dm.OfficerID(officer))
            if action == "create":
                create_legion(
                    world,
                    ODA,
                    _request(commander_id=dm.OfficerID(officer), soldier_count=count, rifles=gear),
                    force_reassign=True,
                )
            elif commanded is None:
                continue
            elif action == "resize":
                update_legion_soldiers(world, ODA, commanded.id, count)
            elif action == "equip":
                update_legion_equipment(world, ODA, commanded.id, rifles=gear, horses=gear // 3, cannons=0)
            else:
                disband_legion(world, ODA, commanded.id)

            assert _holdings(world, ODA) == expected
            oda = world.factions[ODA]
            assert min(oda.idle_soldiers, oda.rifles, oda.horses, oda.cannons) >= 0
            commanders = [legion.commander_id for legion in world.legions.values()]
            assert len(commanders) == len(set(commanders))

    def test_available_commanders(self):
        world = _world()
        _create(world)

        free = available_commanders(world, ODA)

        assert [officer.id for officer in free] == [dm.OfficerID("niwa")]
