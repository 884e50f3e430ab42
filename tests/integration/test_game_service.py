"""Integration tests for the game service against a JSON data directory."""

from __future__ import annotations

import sys
import threading

import pytest

from gekokujo.config import Settings
from gekokujo.domain import models as dm
from gekokujo.domain.enums import ActorRole, ErrorKind, InvestmentTrack, OfficerArchetype
from gekokujo.domain.legion import CreateLegionRequest
from gekokujo.main import main
from gekokujo.repository import JsonGameRepository
from gekokujo.services import GameService
from gekokujo.utils.rng import d100, generate_seed

ODA = dm.FactionID("oda")
TAKEDA = dm.FactionID("takeda")
ADMIN = dm.Actor(role=ActorRole.ADMIN, user_id="gm")
PLAYER = dm.Actor(role=ActorRole.PLAYER, user_id="nobunaga", faction_id=ODA)


def _seed_world() -> dm.World:
    world = dm.World()
    for faction_id, name, leader in ((ODA, "织田", "织田信长"), (TAKEDA, "武田", "武田信玄")):
        world.factions[faction_id] = dm.Faction(
            id=faction_id,
            name=name,
            leader_name=leader,
            code=f"{faction_id}-code",
            tax_rate=0.4,
            treasury=20_000,
            idle_soldiers=460,
            rifles=40,
            buffs=[dm.Buff(name=f"效果{index}", effect="+1") for index in range(12)],
        )
    for territory_id, province, district, owner in (
        ("owari", "尾张", "爱知郡", ODA),
        ("kai", "甲斐", "山梨郡", TAKEDA),
    ):
        world.territories[dm.TerritoryID(territory_id)] = dm.Territory(
            id=dm.TerritoryID(territory_id),
            province_name=province,
            district_name=district,
            castle_name=f"{district}城",
            castle_level=3,
            base_kokudaka=100_000,
            faction_id=owner,
        )
    for officer_id, name, faction_id in (
        ("shibata", "柴田胜家", ODA),
        ("niwa", "丹羽长秀", ODA),
        ("baba", "马场信春", TAKEDA),
    ):
        world.officers[dm.OfficerID(officer_id)] = dm.Officer(
            id=dm.OfficerID(officer_id),
            name=name,
            archetype=OfficerArchetype.WARRIOR,
            martial=80,
            civil=80,
            faction_id=faction_id,
        )
    world.special_products["生丝"] = dm.SpecialProduct(name="生丝", annual_kokudaka=2_000)
    return world


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a seeded data directory."""
    JsonGameRepository(tmp_path).save_world(_seed_world())
    return Settings(data_dir=tmp_path, max_snapshots=5)


@pytest.fixture
def service(settings):
    """Service whose dice always come up 1."""
    return GameService.from_settings(settings, roller=lambda seed: 1)


def _request(**kwargs) -> CreateLegionRequest:
    defaults = {
        "name": "先锋队",
        "commander_id": dm.OfficerID("shibata"),
        "soldier_count": 300,
        "location_id": dm.TerritoryID("owari"),
    }
    defaults.update(kwargs)
    return CreateLegionRequest(**defaults)


class TestLedgerOperations:
    def test_committed_operation_is_logged_and_persisted(self, service, settings):
        result = service.create_legion(PLAYER, ODA, _request(rifles=10))

        assert result.success
        [record] = service.recent_operations()
        assert record.action == "create_legion"
        assert record.faction_id == ODA
        assert record.details["soldier_count"] == 300
        assert record.user_type is ActorRole.PLAYER

        reloaded = GameService.from_settings(settings)
        assert reloaded.world_copy() == service.world_copy()
        assert reloaded.recent_operations() == service.recent_operations()

    def test_rejections_are_not_logged(self, service):
        before = service.world_copy()

        assert service.recruit_soldiers(PLAYER, ODA, 10_000).kind is ErrorKind.INSUFFICIENT_RESOURCE
        assert service.purchase_equipment(PLAYER, ODA).kind is ErrorKind.VALIDATION

        assert service.recent_operations() == []
        assert service.world_copy() == before

    def test_invest_uses_injected_roller(self, service):
        result = service.invest(PLAYER, ODA, dm.OfficerID("niwa"), InvestmentTrack.AGRICULTURE)

        assert result.success
        assert result.data is not None
        assert result.data.roll == 1
        assert result.data.points_gained == 11
        [record] = service.recent_operations()
        assert record.details["outcome"] == "critical_success"
        assert record.details["seed"] == "1:oda:invest_agriculture_niwa_2"

    def test_preview_does_not_commit(self, service):
        preview = service.preview_investment(ODA, dm.OfficerID("niwa"), InvestmentTrack.NAVY)

        assert preview.success
        assert preview.data is not None
        assert preview.data.cost == 8_000
        assert service.recent_operations() == []

    def test_reads(self, service):
        assert service.recruit_info(ODA).data.available_to_recruit == 1_840
        assert service.tax_rate_info(ODA).data.legal_rates == (0.4, 0.6, 0.8)
        assert len(service.available_commanders(ODA).data) == 2
        assert service.faction_calculation(dm.FactionID("nobody")).kind is ErrorKind.NOT_FOUND
        assert service.get_special_product("生丝").data.annual_kokudaka == 2_000
        assert service.get_special_product("茶叶").kind is ErrorKind.NOT_FOUND_CATALOG

    def test_dashboard_caps_buffs(self, service):
        dashboard = service.faction_dashboard(ODA)

        assert dashboard.success
        assert dashboard.data is not None
        assert len(dashboard.data.buffs) == 10
        assert dashboard.data.investments["armament"]["level_name"] == "无"

    def test_reads_return_copies(self, service):
        legion = service.create_legion(PLAYER, ODA, _request()).data.legion
        legions = service.faction_legions(ODA).data

        legions[0].soldier_count = 1

        assert service.world_copy().legions[legion.id].soldier_count == 300

    def test_concurrent_operations_conserve_soldiers(self, service):
        start = service.world_copy()
        totals = {
            faction_id: faction.idle_soldiers for faction_id, faction in start.factions.items()
        }

        def churn(faction_id, commander):
            for _ in range(10):
                created = service.create_legion(
                    PLAYER,
                    faction_id,
                    _request(commander_id=dm.OfficerID(commander), location_id=location[faction_id]),
                )
                if created.success:
                    service.update_legion_soldiers(PLAYER, faction_id, created.data.legion.id, 200)
                    service.disband_legion(PLAYER, faction_id, created.data.legion.id)
                service.recruit_soldiers(PLAYER, faction_id, 1)

        location = {ODA: dm.TerritoryID("owari"), TAKEDA: dm.TerritoryID("kai")}
        threads = [
            threading.Thread(target=churn, args=(ODA, "shibata")),
            threading.Thread(target=churn, args=(ODA, "niwa")),
            threading.Thread(target=churn, args=(TAKEDA, "baba")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        world = service.world_copy()
        assert world.legions == {}
        assert world.factions[ODA].idle_soldiers == totals[ODA] + 20
        assert world.factions[TAKEDA].idle_soldiers == totals[TAKEDA] + 10


class TestGameLock:
    def test_lock_gate_comes_before_argument_checks(self, service):
        assert service.lock_game(ADMIN).success

        result = service.recruit_soldiers(PLAYER, ODA, -5)

        assert result.kind is ErrorKind.STATE_GATE
        assert "locked" in result.error.message

    def test_admin_bypasses_lock(self, service):
        service.lock_game(ADMIN)
        assert service.recruit_soldiers(ADMIN, ODA, 10).success

    def test_lock_and_unlock_gates(self, service):
        assert service.unlock_game(ADMIN).kind is ErrorKind.STATE_GATE
        assert service.lock_game(ADMIN).success
        assert service.lock_game(ADMIN).kind is ErrorKind.STATE_GATE
        assert service.game_state().is_locked
        assert service.unlock_game(ADMIN).success
        assert not service.game_state().is_locked
        assert [record.action for record in service.recent_operations()] == [
            "unlock_game",
            "lock_game",
        ]

    def test_players_cannot_run_admin_operations(self, service):
        assert service.lock_game(PLAYER).kind is ErrorKind.STATE_GATE
        assert service.advance_year(PLAYER).kind is ErrorKind.STATE_GATE
        assert service.rollback_to_operation(PLAYER, dm.OperationID("x")).kind is ErrorKind.STATE_GATE
        assert not service.game_state().is_locked


class TestYearAndHistory:
    def test_advance_year_is_refused_while_locked(self, service):
        service.lock_game(ADMIN)
        assert service.advance_year(ADMIN).kind is ErrorKind.STATE_GATE
        assert service.game_state().current_year == 1

    def test_advance_year_snapshots_and_logs(self, service):
        result = service.advance_year(ADMIN)

        assert result.success
        assert result.data is not None
        assert result.data.year == 2
        [record] = service.rollbackable_operations()
        assert record.action == "advance_year"
        [summary] = service.list_snapshots()
        assert summary.id == record.snapshot_id
        assert summary.current_year == 2

    def test_rollback_round_trip(self, service):
        service.advance_year(ADMIN)
        checkpoint = service.world_copy()
        [record] = service.rollbackable_operations()

        service.recruit_soldiers(PLAYER, ODA, 100)
        service.change_tax_rate(PLAYER, ODA, 0.6)
        assert service.world_copy() != checkpoint

        result = service.rollback_to_operation(ADMIN, record.id)

        assert result.success
        assert result.data is True
        assert service.world_copy() == checkpoint
        assert service.recent_operations()[0].action == "rollback"

    def test_rollback_without_snapshot(self, service):
        service.recruit_soldiers(PLAYER, ODA, 100)
        [record] = service.recent_operations()

        result = service.rollback_to_operation(ADMIN, record.id)

        assert result.kind is ErrorKind.NOT_FOUND

    def test_restore_unknown_snapshot(self, service):
        result = service.restore_from_snapshot(ADMIN, dm.SnapshotID("missing"))

        assert result.success
        assert result.data is False
        assert service.recent_operations() == []

    def test_restore_snapshot(self, service):
        service.advance_year(ADMIN)
        [summary] = service.list_snapshots()
        service.advance_year(ADMIN)
        assert service.game_state().current_year == 3

        result = service.restore_from_snapshot(ADMIN, summary.id)

        assert result.data is True
        assert service.game_state().current_year == 2
        assert service.recent_operations()[0].action == "restore_snapshot"

    def test_snapshots_are_pruned(self, service):
        for _ in range(7):
            service.advance_year(ADMIN)

        summaries = service.list_snapshots()

        assert len(summaries) == 5
        assert summaries[0].current_year == 8


def test_fresh_directory_uses_default_admin_code(tmp_path):
    service = GameService.from_settings(Settings(data_dir=tmp_path, default_admin_code="gm-code"))
    assert service.game_state().admin_code == "gm-code"
    assert service.faction_summaries() == []


def test_cli_status_and_lock(settings, capsys):
    data_dir = str(settings.data_dir)

    assert main(["--data-dir", data_dir, "status"]) == 0
    assert "织田" in capsys.readouterr().out

    assert main(["--data-dir", data_dir, "lock"]) == 0
    assert main(["--data-dir", data_dir, "lock"]) == 1
    assert "already locked" in capsys.readouterr().err


class TestSeededInvestment:
    def _fresh(self, tmp_path, name, **settings_kwargs):
        data_dir = tmp_path / name
        JsonGameRepository(data_dir).save_world(_seed_world())
        return GameService.from_settings(Settings(data_dir=data_dir, **settings_kwargs))

    def test_same_state_gives_same_roll(self, tmp_path):
        first = self._fresh(tmp_path, "a")
        second = self._fresh(tmp_path, "b")

        rolls = [
            service.invest(PLAYER, ODA, dm.OfficerID("niwa"), InvestmentTrack.AGRICULTURE).data.roll
            for service in (first, second)
        ]

        seed = generate_seed(1, ODA, "invest_agriculture_niwa_2")
        assert rolls == [d100(seed), d100(seed)]
        assert first.recent_operations()[0].details["seed"] == seed

    def test_spent_action_point_changes_the_seed(self, tmp_path):
        service = self._fresh(tmp_path, "a")

        for _ in range(2):
            service.invest(PLAYER, ODA, dm.OfficerID("niwa"), InvestmentTrack.AGRICULTURE)

        seeds = [record.details["seed"] for record in service.recent_operations()]
        assert seeds == [
            "1:oda:invest_agriculture_niwa_1",
            "1:oda:invest_agriculture_niwa_2",
        ]

    def test_salt_is_mixed_into_the_seed(self, tmp_path):
        service = self._fresh(tmp_path, "a", dice_salt="kiyosu-")

        result = service.invest(PLAYER, ODA, dm.OfficerID("niwa"), InvestmentTrack.NAVY)

        seed = "1:oda:kiyosu-invest_navy_niwa_2"
        assert result.data.roll == d100(seed)
        assert service.recent_operations()[0].details["seed"] == seed

    def test_rejected_investment_is_not_logged(self, service):
        result = service.invest(PLAYER, ODA, dm.OfficerID("baba"), InvestmentTrack.NAVY)

        assert not result.success
        assert service.recent_operations() == []


class TestSharedWorldLocking:
    def test_readers_never_see_a_half_written_world(self, tmp_path):
        world = _seed_world()
        for index in range(300):
            legion_id = dm.LegionID(f"takeda-{index}")
            world.legions[legion_id] = dm.Legion(
                id=legion_id,
                name=f"武田{index}番队",
                commander_id=dm.OfficerID("baba"),
                commander_name="马场信春",
                soldier_count=10,
                rifles=0,
                horses=0,
                cannons=0,
                location_id=dm.TerritoryID("kai"),
                location_name="山梨郡",
                faction_id=TAKEDA,
            )
        JsonGameRepository(tmp_path).save_world(world)
        service = GameService.from_settings(Settings(data_dir=tmp_path), roller=lambda seed: 1)
        stop = threading.Event()
        errors: list[BaseException] = []

        def writer():
            try:
                while not stop.is_set():
                    created = service.create_legion(PLAYER, ODA, _request())
                    if created.success:
                        service.disband_legion(PLAYER, ODA, created.data.legion.id)
            except Exception as exc:
                errors.append(exc)

        def reader():
            try:
                for _ in range(100):
                    result = service.faction_calculation(TAKEDA)
                    if not result.success:
                        errors.append(AssertionError(result.error))
                    service.faction_legions(TAKEDA)
            except Exception as exc:
                errors.append(exc)

        interval = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        try:
            writing = threading.Thread(target=writer)
            readers = [threading.Thread(target=reader) for _ in range(3)]
            writing.start()
            for thread in readers:
                thread.start()
            for thread in readers:
                thread.join()
            stop.set()
            writing.join()
        finally:
            sys.setswitchinterval(interval)

        assert errors == []
        assert len(service.faction_legions(TAKEDA).data) == 300

    def test_unknown_faction_is_not_found_and_not_registered(self, service):
        ghost = dm.FactionID("ghost")

        assert service.recruit_soldiers(PLAYER, ghost, 1).kind is ErrorKind.NOT_FOUND
        assert service.faction_dashboard(ghost).kind is ErrorKind.NOT_FOUND
        assert ghost not in service._locks
        assert ODA in service._locks


class TestAccountingJournal:
    def test_admin_files_and_filters_notes(self, service):
        first = service.add_accounting_log(ADMIN, 1, ODA, "  堺商人献金 3000  ")
        service.add_accounting_log(ADMIN, 1, TAKEDA, "金山增产", should_calculate=True)
        service.add_accounting_log(ADMIN, 2, ODA, "修筑清洲城")

        assert first.success
        assert first.data.content == "堺商人献金 3000"
        assert first.data.faction_name == "织田"
        assert len(service.accounting_logs(ADMIN).data) == 3
        assert [log.content for log in service.accounting_logs(ADMIN, year=1, faction_id=ODA).data] == [
            "堺商人献金 3000"
        ]
        [pending] = service.accounting_logs(ADMIN, should_calculate=True).data
        assert pending.faction_id == TAKEDA

    def test_notes_are_validated(self, service):
        assert service.add_accounting_log(ADMIN, 0, ODA, "x").kind is ErrorKind.VALIDATION
        assert service.add_accounting_log(ADMIN, 1, ODA, "   ").kind is ErrorKind.VALIDATION
        assert (
            service.add_accounting_log(ADMIN, 1, dm.FactionID("ghost"), "x").kind
            is ErrorKind.NOT_FOUND
        )
        assert service.accounting_logs(ADMIN).data == []

    def test_players_cannot_touch_the_journal(self, service):
        assert service.add_accounting_log(PLAYER, 1, ODA, "x").kind is ErrorKind.STATE_GATE
        assert service.accounting_logs(PLAYER).kind is ErrorKind.STATE_GATE
        assert service.delete_accounting_logs_by_year(PLAYER, 1).kind is ErrorKind.STATE_GATE

    def test_delete_and_delete_by_year(self, service, settings):
        note = service.add_accounting_log(ADMIN, 1, ODA, "堺商人献金").data
        service.add_accounting_log(ADMIN, 1, TAKEDA, "金山增产")
        service.add_accounting_log(ADMIN, 2, ODA, "修筑清洲城")

        assert service.delete_accounting_log(ADMIN, note.id).data is True
        assert (
            service.delete_accounting_log(ADMIN, note.id).kind is ErrorKind.NOT_FOUND
        )
        assert service.delete_accounting_logs_by_year(ADMIN, 1).data == 1

        reloaded = GameService.from_settings(settings)
        assert [log.content for log in reloaded.accounting_logs(ADMIN).data] == ["修筑清洲城"]


class TestStatusReads:
    def test_player_recent_operations_are_per_faction(self, service):
        for _ in range(6):
            service.recruit_soldiers(PLAYER, ODA, 1)
        service.recruit_soldiers(PLAYER, TAKEDA, 1)

        oda_records = service.player_recent_operations(ODA)

        assert len(oda_records) == 5
        assert {record.faction_id for record in oda_records} == {ODA}
        assert [record.faction_id for record in service.player_recent_operations(TAKEDA)] == [TAKEDA]
        assert len(service.recent_operations(faction_id=ODA)) == 6

    def test_game_status_summary(self, service):
        service.create_legion(PLAYER, ODA, _request())
        service.lock_game(ADMIN)

        summary = service.game_status_summary()

        assert summary.current_year == 1
        assert summary.is_locked
        assert summary.faction_count == 2
        assert summary.total_territories == 2
        assert summary.total_legions == 1
        assert summary.recent_operations_count == 2

    def test_available_investors(self, service):
        assert {officer.id for officer in service.available_investors(ODA).data} == {"shibata", "niwa"}

        service.invest(PLAYER, ODA, dm.OfficerID("niwa"), InvestmentTrack.AGRICULTURE)
        service.invest(PLAYER, ODA, dm.OfficerID("niwa"), InvestmentTrack.AGRICULTURE)

        assert [officer.id for officer in service.available_investors(ODA).data] == ["shibata"]
        assert service.available_investors(dm.FactionID("ghost")).kind is ErrorKind.NOT_FOUND


def test_cli_summary_and_accounting(settings, capsys):
    data_dir = str(settings.data_dir)

    assert main(["--data-dir", data_dir, "summary"]) == 0
    assert "2 factions" in capsys.readouterr().out

    assert main(
        ["--data-dir", data_dir, "accounting", "--year", "1", "--faction", "oda", "--add", "献金"]
    ) == 0
    assert main(["--data-dir", data_dir, "accounting", "--year", "1"]) == 0
    assert "献金" in capsys.readouterr().out
    assert main(["--data-dir", data_dir, "accounting", "--delete-year", "1"]) == 0
    assert "1 notes deleted" in capsys.readouterr().out
