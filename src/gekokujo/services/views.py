"""Read models assembled from the world for display."""

from __future__ import annotations

from dataclasses import dataclass, field

from gekokujo.domain import economy
from gekokujo.domain.investment import investment_status
from gekokujo.domain.models import Buff, DiplomacyRelation, Faction, Legion, Officer, Territory, World
from gekokujo.domain.rules_config import DEFAULT_RULES, RulesConfig


@dataclass(slots=True)
class FactionDashboard:
    """Everything a faction's players see on their overview page."""

    faction: Faction
    calculation: economy.FactionCalculation
    armament_level_name: str
    investments: dict[str, dict[str, object]]
    buffs: list[Buff] = field(default_factory=list)
    territories: list[Territory] = field(default_factory=list)
    officers: list[Officer] = field(default_factory=list)
    legions: list[Legion] = field(default_factory=list)
    diplomacy: list[DiplomacyRelation] = field(default_factory=list)


@dataclass(slots=True)
class FactionSummary:
    """One row of the admin faction list."""

    id: str
    name: str
    leader_name: str
    code: str
    tax_rate: float
    treasury: float
    surface_kokudaka: float
    total_soldiers: int
    territory_count: int
    officer_count: int
    legion_count: int


def build_dashboard(
    world: World, faction: Faction, *, rules: RulesConfig = DEFAULT_RULES
) -> FactionDashboard:
    calc = economy.calculate_faction(world, faction, rules=rules)
    return FactionDashboard(
        faction=faction,
        calculation=calc,
        armament_level_name=calc.armament_level.name,
        investments=investment_status(faction, rules=rules),
        buffs=list(faction.buffs[: rules.ledger.max_displayed_buffs]),
        territories=world.owned_territories(faction.id),
        officers=world.faction_officers(faction.id),
        legions=world.faction_legions(faction.id),
        diplomacy=list(faction.diplomacy),
    )


def summarize_factions(world: World, *, rules: RulesConfig = DEFAULT_RULES) -> list[FactionSummary]:
    rows: list[FactionSummary] = []
    for faction in world.factions.values():
        calc = economy.calculate_faction(world, faction, rules=rules)
        rows.append(
            FactionSummary(
                id=faction.id,
                name=faction.name,
                leader_name=faction.leader_name,
                code=faction.code,
                tax_rate=faction.tax_rate,
                treasury=faction.treasury,
                surface_kokudaka=calc.surface_kokudaka,
                total_soldiers=calc.total_soldiers,
                territory_count=len(world.owned_territories(faction.id)),
                officer_count=len(world.faction_officers(faction.id)),
                legion_count=len(world.faction_legions(faction.id)),
            )
        )
    return rows


@dataclass(slots=True)
class GameStatusSummary:
    """Headline figures for the admin status page."""

    current_year: int
    is_locked: bool
    faction_count: int
    total_territories: int
    total_legions: int
    recent_operations_count: int


def summarize_game(world: World, operations_count: int) -> GameStatusSummary:
    return GameStatusSummary(
        current_year=world.game_state.current_year,
        is_locked=world.game_state.is_locked,
        faction_count=len(world.factions),
        total_territories=len(world.territories),
        total_legions=len(world.legions),
        recent_operations_count=operations_count,
    )
