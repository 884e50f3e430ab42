"""Year-end settlement applied when the game clock advances."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from gekokujo.domain import economy
from gekokujo.domain.models import FactionID, TerritoryID, World
from gekokujo.domain.rules_config import DEFAULT_RULES, RulesConfig


@dataclass(slots=True)
class TerritoryGrowth:
    territory_id: TerritoryID
    district_name: str
    growth: int
    new_kokudaka: float


@dataclass(slots=True)
class FactionSettlement:
    """Books of one faction for the year that just closed."""

    faction_id: FactionID
    faction_name: str
    income: float
    maintenance_cost: float
    previous_treasury: float
    new_treasury: float
    deficit: float
    growth_rate: float
    territory_growth: list[TerritoryGrowth] = field(default_factory=list)
    total_growth: int = 0
    officers_reset: int = 0


@dataclass(slots=True)
class YearEndSettlement:
    previous_year: int
    year: int
    factions: list[FactionSettlement] = field(default_factory=list)


def settle_year(world: World, *, rules: RulesConfig = DEFAULT_RULES) -> YearEndSettlement:
    """Close the current year in place and return what changed.

    Every faction is assessed against the pre-settlement world before any
    territory grows, so the order factions are visited in does not matter.
    The treasury never drops below zero; an unpaid balance is reported as
    ``deficit``.
    """

    assessments = {
        faction.id: economy.calculate_faction(world, faction, rules=rules)
        for faction in world.factions.values()
    }

    settlements: list[FactionSettlement] = []
    for faction in world.factions.values():
        calc = assessments[faction.id]
        previous = faction.treasury
        balance = previous + calc.income - calc.maintenance_cost.total
        faction.treasury = max(0, balance)

        grown: list[TerritoryGrowth] = []
        for territory in world.owned_territories(faction.id):
            growth = math.floor(round(territory.base_kokudaka * calc.growth_rate, 9))
            if growth == 0:
                continue
            territory.base_kokudaka = max(0, territory.base_kokudaka + growth)
            grown.append(
                TerritoryGrowth(
                    territory_id=territory.id,
                    district_name=territory.district_name,
                    growth=growth,
                    new_kokudaka=territory.base_kokudaka,
                )
            )

        faction.tax_rate_changed_year = None
        settlements.append(
            FactionSettlement(
                faction_id=faction.id,
                faction_name=faction.name,
                income=calc.income,
                maintenance_cost=calc.maintenance_cost.total,
                previous_treasury=previous,
                new_treasury=faction.treasury,
                deficit=max(0, -balance),
                growth_rate=calc.growth_rate,
                territory_growth=grown,
                total_growth=sum(item.growth for item in grown),
            )
        )

    by_faction = {settlement.faction_id: settlement for settlement in settlements}
    for officer in world.officers.values():
        if officer.action_points != rules.ledger.max_action_points:
            officer.action_points = rules.ledger.max_action_points
            if officer.faction_id in by_faction:
                by_faction[officer.faction_id].officers_reset += 1

    previous_year = world.game_state.current_year
    world.game_state.current_year += 1
    return YearEndSettlement(
        previous_year=previous_year,
        year=world.game_state.current_year,
        factions=settlements,
    )
