"""Game service: the single entry point outer layers call.

Each public method takes an already-authenticated :class:`Actor`, applies the
lock gate, runs the domain operation against the in-memory world inside the
relevant lock, records committed actions in the operation log and writes the
world back to the repository.

Faction operations are serialised per faction and, because factions share
the legion, officer and territory collections, also hold the world lock
while they run; every read takes the world lock too.  Year advancement,
locking, snapshot restore and rollback hold every lock, so readers see
either the whole old world or the whole new one.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from gekokujo.config import Settings, get_settings
from gekokujo.domain import economy, legion, treasury
from gekokujo.domain import models as dm
from gekokujo.domain.enums import ErrorKind, InvestmentTrack, OperationAction
from gekokujo.domain.investment import (
    InvestmentPreview,
    InvestmentRequest,
    InvestmentResult,
    available_investors,
    execute_investment,
    investment_status,
    preview_investment,
)
from gekokujo.domain.results import LedgerError, Result, not_found, state_gate, validation
from gekokujo.domain.rules_config import DEFAULT_RULES, RulesConfig
from gekokujo.domain.year_end import YearEndSettlement, settle_year
from gekokujo.repository import JsonGameRepository, SnapshotSummary
from gekokujo.services import views
from gekokujo.services.history import AccountingJournal, OperationLog, SnapshotStore
from gekokujo.services.locks import LockRegistry
from gekokujo.utils.rng import d100, generate_seed

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Maps a seed string to a d100 roll.
Roller = Callable[[str], int]

# Collections a faction-scoped operation may change.
FACTION_COLLECTIONS = ("factions", "officers", "legions", "territories")


def _admin_only(actor: dm.Actor, action: str) -> LedgerError | None:
    if actor.is_admin:
        return None
    return state_gate(f"{action} requires an admin", action=action)


class GameService:
    """Coordinates the domain rules, persistence, history and locking."""

    def __init__(
        self,
        repository: JsonGameRepository,
        *,
        settings: Settings | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        roller: Roller | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rules = rules
        self._repository = repository
        self._roller = roller or d100
        self._locks = LockRegistry()
        self._world = repository.load_world()
        self._locks.register(self._world.factions)
        if not repository.has_collection("game_state"):
            self._world.game_state.admin_code = self.settings.default_admin_code
        self.operations = OperationLog(
            repository, max_records=self.settings.max_operation_records
        )
        self.snapshots = SnapshotStore(repository, max_snapshots=self.settings.max_snapshots)
        self.accounting = AccountingJournal(repository)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> GameService:
        settings = settings or get_settings()
        return cls(JsonGameRepository(settings.data_dir), settings=settings, **kwargs)

    # ------------------------------------------------------------------
    # Plumbing

    def _flush(self, collections: tuple[str, ...] | None = None) -> None:
        with self._locks.all_factions(self._world.factions):
            self._repository.save_world(self._world, collections)

    def _run_faction_op(
        self,
        actor: dm.Actor,
        faction_id: dm.FactionID,
        action: OperationAction,
        operation: Callable[[dm.World], Result[T]],
        details: Callable[[T], dict[str, Any]],
    ) -> Result[T]:
        with self._locks.faction(faction_id):
            world = self._world
            if world.game_state.is_locked and not actor.is_admin:
                logger.debug("%s rejected for %s: game is locked", action, faction_id)
                return Result.from_error(state_gate("the game is locked", action=str(action)))

            result = operation(world)
            if not result.success:
                logger.debug("%s rejected for %s: %s", action, faction_id, result.error)
                return result

            self.operations.record(
                actor, action, details(cast(T, result.data)), faction_id=faction_id
            )
        self._flush(FACTION_COLLECTIONS)
        return result

    def _read(self, faction_id: dm.FactionID, build: Callable[[dm.World, dm.Faction], T]) -> Result[T]:
        with self._locks.faction(faction_id):
            faction = self._world.factions.get(faction_id)
            if faction is None:
                return Result.from_error(not_found("faction not found", faction_id=faction_id))
            return Result.ok(copy.deepcopy(build(self._world, faction)))

    def _snapshot_for(self, record: dm.OperationRecord) -> dm.SnapshotID:
        snapshot = self.snapshots.create(self._world, record.id)
        self.operations.link_snapshot(record.id, snapshot.id)
        return snapshot.id

    # ------------------------------------------------------------------
    # Legion ledger

    def create_legion(
        self,
        actor: dm.Actor,
        faction_id: dm.FactionID,
        request: legion.CreateLegionRequest,
        *,
        force_reassign: bool = False,
    ) -> Result[legion.LegionCreation]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.CREATE_LEGION,
            lambda world: legion.create_legion(
                world, faction_id, request, force_reassign=force_reassign, rules=self.rules
            ),
            lambda created: {
                "legion_id": created.legion.id,
                "name": created.legion.name,
                "commander_id": created.legion.commander_id,
                "soldier_count": created.legion.soldier_count,
                "rifles": created.legion.rifles,
                "horses": created.legion.horses,
                "cannons": created.legion.cannons,
                "location_id": created.legion.location_id,
                "reassigned_from": (
                    created.reassigned_from.id if created.reassigned_from is not None else None
                ),
            },
        )

    def disband_legion(
        self, actor: dm.Actor, faction_id: dm.FactionID, legion_id: dm.LegionID
    ) -> Result[legion.LegionDisbandment]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.DISBAND_LEGION,
            lambda world: legion.disband_legion(world, faction_id, legion_id),
            lambda done: {
                "legion_id": done.legion.id,
                "name": done.legion.name,
                "returned_soldiers": done.returned.soldiers,
                "returned_rifles": done.returned.rifles,
                "returned_horses": done.returned.horses,
                "returned_cannons": done.returned.cannons,
            },
        )

    def update_legion_soldiers(
        self, actor: dm.Actor, faction_id: dm.FactionID, legion_id: dm.LegionID, new_count: int
    ) -> Result[dm.Legion]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.UPDATE_LEGION_SOLDIERS,
            lambda world: legion.update_legion_soldiers(world, faction_id, legion_id, new_count),
            lambda updated: {"legion_id": updated.id, "soldier_count": updated.soldier_count},
        )

    def update_legion_equipment(
        self,
        actor: dm.Actor,
        faction_id: dm.FactionID,
        legion_id: dm.LegionID,
        rifles: int,
        horses: int,
        cannons: int,
    ) -> Result[dm.Legion]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.UPDATE_LEGION_EQUIPMENT,
            lambda world: legion.update_legion_equipment(
                world, faction_id, legion_id, rifles, horses, cannons
            ),
            lambda updated: {
                "legion_id": updated.id,
                "rifles": updated.rifles,
                "horses": updated.horses,
                "cannons": updated.cannons,
            },
        )

    # ------------------------------------------------------------------
    # Treasury ledger

    def recruit_soldiers(
        self, actor: dm.Actor, faction_id: dm.FactionID, count: int
    ) -> Result[treasury.RecruitResult]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.RECRUIT_SOLDIERS,
            lambda world: treasury.recruit_soldiers(world, faction_id, count, rules=self.rules),
            lambda done: {"count": done.recruited, "idle_soldiers": done.idle_soldiers},
        )

    def purchase_equipment(
        self,
        actor: dm.Actor,
        faction_id: dm.FactionID,
        rifles: int = 0,
        horses: int = 0,
        cannons: int = 0,
    ) -> Result[treasury.PurchaseResult]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.PURCHASE_EQUIPMENT,
            lambda world: treasury.purchase_equipment(
                world, faction_id, rifles, horses, cannons, rules=self.rules
            ),
            lambda done: {
                "rifles": rifles,
                "horses": horses,
                "cannons": cannons,
                "cost": done.cost,
            },
        )

    def disband_soldiers(
        self, actor: dm.Actor, faction_id: dm.FactionID, count: int
    ) -> Result[treasury.DisbandSoldiersResult]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.DISBAND_SOLDIERS,
            lambda world: treasury.disband_soldiers(world, faction_id, count, rules=self.rules),
            lambda done: {"count": done.disbanded, "cost": done.cost},
        )

    def change_tax_rate(
        self, actor: dm.Actor, faction_id: dm.FactionID, new_rate: float
    ) -> Result[treasury.TaxRateChange]:
        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.CHANGE_TAX_RATE,
            lambda world: treasury.change_tax_rate(world, faction_id, new_rate, rules=self.rules),
            lambda done: {"old_rate": done.old_rate, "new_rate": done.new_rate},
        )

    # ------------------------------------------------------------------
    # Investment

    def invest(
        self,
        actor: dm.Actor,
        faction_id: dm.FactionID,
        officer_id: dm.OfficerID,
        track: InvestmentTrack,
        amount: int | None = None,
    ) -> Result[InvestmentResult]:
        request = InvestmentRequest(
            faction_id=faction_id, officer_id=officer_id, track=track, amount=amount
        )
        seeds: list[str] = []

        def run(world: dm.World) -> Result[InvestmentResult]:
            officer = world.officers.get(officer_id)
            seed = generate_seed(
                world.game_state.current_year,
                faction_id,
                f"{self.settings.dice_salt}invest_{track}_{officer_id}_"
                f"{officer.action_points if officer is not None else 0}",
            )
            seeds.append(seed)
            return execute_investment(world, request, self._roller(seed), rules=self.rules)

        return self._run_faction_op(
            actor,
            faction_id,
            OperationAction.INVEST,
            run,
            lambda done: {
                "officer_id": officer_id,
                "track": str(track),
                "seed": seeds[-1],
                "roll": done.roll,
                "outcome": str(done.outcome),
                "points_gained": done.points_gained,
                "new_points": done.new_points,
                "cost": done.cost,
            },
        )

    def preview_investment(
        self,
        faction_id: dm.FactionID,
        officer_id: dm.OfficerID,
        track: InvestmentTrack,
        amount: int | None = None,
    ) -> Result[InvestmentPreview]:
        request = InvestmentRequest(
            faction_id=faction_id, officer_id=officer_id, track=track, amount=amount
        )
        with self._locks.faction(faction_id):
            return Result.ok(preview_investment(self._world, request, rules=self.rules))

    # ------------------------------------------------------------------
    # Global operations

    def advance_year(self, actor: dm.Actor) -> Result[YearEndSettlement]:
        """Close the year for every faction and snapshot the result."""

        error = _admin_only(actor, "advance_year")
        if error is not None:
            return Result.from_error(error)

        with self._locks.everything(self._world.factions):
            world = self._world
            if world.game_state.is_locked:
                return Result.from_error(
                    state_gate("the game is locked; unlock it before advancing the year")
                )
            settlement = settle_year(world, rules=self.rules)
            self._repository.save_world(world)
            record = self.operations.record(
                actor,
                OperationAction.ADVANCE_YEAR,
                {
                    "previous_year": settlement.previous_year,
                    "new_year": settlement.year,
                    "faction_count": len(settlement.factions),
                },
            )
            self._snapshot_for(record)
        logger.info("advanced to year %d", settlement.year)
        return Result.ok(settlement)

    def _set_locked(self, actor: dm.Actor, locked: bool) -> Result[dm.GameState]:
        action = OperationAction.LOCK_GAME if locked else OperationAction.UNLOCK_GAME
        error = _admin_only(actor, str(action))
        if error is not None:
            return Result.from_error(error)

        with self._locks.everything(self._world.factions):
            state = self._world.game_state
            if state.is_locked == locked:
                return Result.from_error(
                    state_gate(
                        "the game is already locked" if locked else "the game is not locked",
                        is_locked=state.is_locked,
                    )
                )
            state.is_locked = locked
            self._repository.save_world(self._world, ("game_state",))
            self.operations.record(actor, action, {"is_locked": locked})
            logger.info("game %s by %s", "locked" if locked else "unlocked", actor.user_id)
            return Result.ok(copy.deepcopy(state))

    def lock_game(self, actor: dm.Actor) -> Result[dm.GameState]:
        return self._set_locked(actor, True)

    def unlock_game(self, actor: dm.Actor) -> Result[dm.GameState]:
        return self._set_locked(actor, False)

    def _restore(self, snapshot_id: dm.SnapshotID) -> bool:
        with self._locks.everything(self._world.factions):
            restored = self.snapshots.restore(snapshot_id)
            if restored is None:
                return False
            self._world = restored
            self._locks.register(restored.factions)
            self._repository.save_world(restored)
        return True

    def restore_from_snapshot(self, actor: dm.Actor, snapshot_id: dm.SnapshotID) -> Result[bool]:
        """Replace the world with a snapshot; ``data`` is False for an unknown id."""

        error = _admin_only(actor, "restore_snapshot")
        if error is not None:
            return Result.from_error(error)
        if not self._restore(snapshot_id):
            return Result.ok(False)
        self.operations.record(
            actor, OperationAction.RESTORE_SNAPSHOT, {"snapshot_id": snapshot_id}
        )
        logger.info("world restored from snapshot %s", snapshot_id)
        return Result.ok(True)

    def rollback_to_operation(
        self, actor: dm.Actor, operation_id: dm.OperationID
    ) -> Result[bool]:
        """Return the world to the snapshot linked to an operation record."""

        error = _admin_only(actor, "rollback")
        if error is not None:
            return Result.from_error(error)

        record = self.operations.get(operation_id)
        if record is None:
            return Result.fail(ErrorKind.NOT_FOUND, "operation not found", operation_id=operation_id)
        if record.snapshot_id is None:
            return Result.fail(
                ErrorKind.NOT_FOUND, "operation has no snapshot", operation_id=operation_id
            )
        if not self._restore(record.snapshot_id):
            return Result.fail(
                ErrorKind.NOT_FOUND,
                "snapshot no longer exists",
                operation_id=operation_id,
                snapshot_id=record.snapshot_id,
            )
        self.operations.record(
            actor,
            OperationAction.ROLLBACK,
            {
                "operation_id": operation_id,
                "snapshot_id": record.snapshot_id,
                "rolled_back_action": record.action,
            },
        )
        logger.info("rolled back to operation %s", operation_id)
        return Result.ok(True)

    # ------------------------------------------------------------------
    # Reads

    def game_state(self) -> dm.GameState:
        with self._locks.clock:
            return copy.deepcopy(self._world.game_state)

    def faction_calculation(self, faction_id: dm.FactionID) -> Result[economy.FactionCalculation]:
        return self._read(
            faction_id, lambda world, faction: economy.calculate_faction(world, faction, rules=self.rules)
        )

    def faction_dashboard(self, faction_id: dm.FactionID) -> Result[views.FactionDashboard]:
        return self._read(
            faction_id, lambda world, faction: views.build_dashboard(world, faction, rules=self.rules)
        )

    def faction_summaries(self) -> list[views.FactionSummary]:
        with self._locks.all_factions(self._world.factions):
            return views.summarize_factions(self._world, rules=self.rules)

    def recruit_info(self, faction_id: dm.FactionID) -> Result[treasury.RecruitInfo]:
        return self._read(
            faction_id, lambda world, faction: treasury.recruit_info(world, faction, rules=self.rules)
        )

    def purchase_info(self, faction_id: dm.FactionID) -> Result[treasury.PurchaseInfo]:
        return self._read(
            faction_id, lambda world, faction: treasury.purchase_info(faction, rules=self.rules)
        )

    def disband_info(self, faction_id: dm.FactionID) -> Result[treasury.DisbandInfo]:
        return self._read(
            faction_id, lambda world, faction: treasury.disband_info(faction, rules=self.rules)
        )

    def tax_rate_info(self, faction_id: dm.FactionID) -> Result[treasury.TaxRateInfo]:
        return self._read(
            faction_id, lambda world, faction: treasury.tax_rate_info(world, faction, rules=self.rules)
        )

    def investment_status(self, faction_id: dm.FactionID) -> Result[dict[str, dict[str, object]]]:
        return self._read(
            faction_id, lambda world, faction: investment_status(faction, rules=self.rules)
        )

    def available_commanders(self, faction_id: dm.FactionID) -> Result[list[dm.Officer]]:
        return self._read(
            faction_id, lambda world, faction: legion.available_commanders(world, faction.id)
        )

    def available_investors(self, faction_id: dm.FactionID) -> Result[list[dm.Officer]]:
        return self._read(
            faction_id, lambda world, faction: available_investors(world, faction.id)
        )

    def faction_legions(self, faction_id: dm.FactionID) -> Result[list[dm.Legion]]:
        return self._read(
            faction_id, lambda world, faction: legion.faction_legions(world, faction.id)
        )

    def get_special_product(self, name: str) -> Result[dm.SpecialProduct]:
        with self._locks.clock:
            product = self._world.special_products.get(name)
            if product is None:
                return Result.fail(
                    ErrorKind.NOT_FOUND_CATALOG, "special product not in catalog", name=name
                )
            return Result.ok(copy.deepcopy(product))

    def list_snapshots(self) -> list[SnapshotSummary]:
        return self.snapshots.summaries()

    def recent_operations(
        self, limit: int = 50, *, faction_id: dm.FactionID | None = None
    ) -> list[dm.OperationRecord]:
        return self.operations.recent(limit, faction_id=faction_id)

    def player_recent_operations(
        self, faction_id: dm.FactionID, limit: int = 5
    ) -> list[dm.OperationRecord]:
        """The last few actions filed against one faction, for its player page."""

        return self.operations.recent(limit, faction_id=faction_id)

    def game_status_summary(self) -> views.GameStatusSummary:
        with self._locks.all_factions(self._world.factions):
            return views.summarize_game(self._world, len(self.operations))

    def rollbackable_operations(self) -> list[dm.OperationRecord]:
        return self.operations.rollbackable()

    # ------------------------------------------------------------------
    # Accounting journal

    def add_accounting_log(
        self,
        actor: dm.Actor,
        year: int,
        faction_id: dm.FactionID,
        content: str,
        *,
        should_calculate: bool = False,
    ) -> Result[dm.AccountingLog]:
        error = _admin_only(actor, "add_accounting_log")
        if error is not None:
            return Result.from_error(error)
        if year < 1:
            return Result.from_error(validation("year must be at least 1", year=year))
        content = content.strip()
        if not content:
            return Result.from_error(validation("accounting note is empty"))
        with self._locks.faction(faction_id):
            faction = self._world.factions.get(faction_id)
            if faction is None:
                return Result.from_error(not_found("faction not found", faction_id=faction_id))
            faction_name = faction.name
        entry = self.accounting.add(
            year=year,
            faction_id=faction_id,
            faction_name=faction_name,
            content=content,
            should_calculate=should_calculate,
        )
        logger.info("accounting note %s filed for %s, year %d", entry.id, faction_id, year)
        return Result.ok(copy.deepcopy(entry))

    def accounting_logs(
        self,
        actor: dm.Actor,
        *,
        year: int | None = None,
        faction_id: dm.FactionID | None = None,
        should_calculate: bool | None = None,
    ) -> Result[list[dm.AccountingLog]]:
        error = _admin_only(actor, "accounting_logs")
        if error is not None:
            return Result.from_error(error)
        logs = self.accounting.filter(
            year=year, faction_id=faction_id, should_calculate=should_calculate
        )
        return Result.ok(copy.deepcopy(logs))

    def delete_accounting_log(self, actor: dm.Actor, log_id: dm.AccountingLogID) -> Result[bool]:
        error = _admin_only(actor, "delete_accounting_log")
        if error is not None:
            return Result.from_error(error)
        if not self.accounting.delete(log_id):
            return Result.fail(ErrorKind.NOT_FOUND, "accounting note not found", log_id=log_id)
        return Result.ok(True)

    def delete_accounting_logs_by_year(self, actor: dm.Actor, year: int) -> Result[int]:
        """Drop every note filed for ``year``; ``data`` is how many were removed."""

        error = _admin_only(actor, "delete_accounting_logs_by_year")
        if error is not None:
            return Result.from_error(error)
        deleted = self.accounting.delete_year(year)
        logger.info("%d accounting notes deleted for year %d", deleted, year)
        return Result.ok(deleted)

    def world_copy(self) -> dm.World:
        """Deep copy of the whole world, taken under every lock."""

        with self._locks.all_factions(self._world.factions):
            return copy.deepcopy(self._world)
