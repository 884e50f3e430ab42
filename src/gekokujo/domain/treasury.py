"""Single-resource transactions against a faction's treasury and inventory.

Recruiting, buying equipment, dismissing idle soldiers and changing the tax
rate never involve a legion.  Each one validates its arguments and the
faction's balances first and only then applies the change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gekokujo.domain import economy
from gekokujo.domain.models import Faction, FactionID, World
from gekokujo.domain.results import Result, insufficient, not_found, state_gate, validation
from gekokujo.domain.rules_config import DEFAULT_RULES, RulesConfig

logger = logging.getLogger(__name__)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(slots=True)
class RecruitInfo:
    max_recruitable: int
    total_soldiers: int
    available_to_recruit: int
    idle_soldiers: int
    tax_rate: float


@dataclass(slots=True)
class RecruitResult:
    recruited: int
    idle_soldiers: int
    total_soldiers: int
    available_to_recruit: int


@dataclass(slots=True)
class PurchaseInfo:
    rifle_price: int
    horse_price: int
    cannon_price: int
    treasury: float
    rifles: int
    horses: int
    cannons: int


@dataclass(slots=True)
class PurchaseResult:
    rifles: int
    horses: int
    cannons: int
    cost: float
    treasury: float


@dataclass(slots=True)
class DisbandInfo:
    idle_soldiers: int
    cost_per_soldier: int
    treasury: float
    max_disbandable: int


@dataclass(slots=True)
class DisbandSoldiersResult:
    disbanded: int
    cost: float
    idle_soldiers: int
    treasury: float


@dataclass(slots=True)
class TaxRateInfo:
    current_rate: float
    legal_rates: tuple[float, ...]
    changed_this_year: bool
    current_year: int


@dataclass(slots=True)
class TaxRateChange:
    old_rate: float
    new_rate: float
    year: int


# ---------------------------------------------------------------------------
# Read helpers


def recruit_info(world: World, faction: Faction, *, rules: RulesConfig = DEFAULT_RULES) -> RecruitInfo:
    """How many soldiers the faction may still raise this year."""

    calc = economy.calculate_faction(world, faction, rules=rules)
    return RecruitInfo(
        max_recruitable=calc.max_recruitable_soldiers,
        total_soldiers=calc.total_soldiers,
        available_to_recruit=max(0, calc.max_recruitable_soldiers - calc.total_soldiers),
        idle_soldiers=faction.idle_soldiers,
        tax_rate=faction.tax_rate,
    )


def purchase_info(faction: Faction, *, rules: RulesConfig = DEFAULT_RULES) -> PurchaseInfo:
    return PurchaseInfo(
        rifle_price=rules.ledger.rifle_price,
        horse_price=rules.ledger.horse_price,
        cannon_price=rules.ledger.cannon_price,
        treasury=faction.treasury,
        rifles=faction.rifles,
        horses=faction.horses,
        cannons=faction.cannons,
    )


def purchase_cost(
    rifles: int, horses: int, cannons: int, *, rules: RulesConfig = DEFAULT_RULES
) -> int:
    ledger = rules.ledger
    return rifles * ledger.rifle_price + horses * ledger.horse_price + cannons * ledger.cannon_price


def disband_info(faction: Faction, *, rules: RulesConfig = DEFAULT_RULES) -> DisbandInfo:
    per_soldier = rules.ledger.disband_cost_per_soldier
    affordable = int(faction.treasury // per_soldier) if per_soldier > 0 else faction.idle_soldiers
    return DisbandInfo(
        idle_soldiers=faction.idle_soldiers,
        cost_per_soldier=per_soldier,
        treasury=faction.treasury,
        max_disbandable=max(0, min(faction.idle_soldiers, affordable)),
    )


def tax_changed_this_year(world: World, faction: Faction) -> bool:
    return faction.tax_rate_changed_year == world.game_state.current_year


def tax_rate_info(world: World, faction: Faction, *, rules: RulesConfig = DEFAULT_RULES) -> TaxRateInfo:
    return TaxRateInfo(
        current_rate=faction.tax_rate,
        legal_rates=rules.ledger.legal_tax_rates,
        changed_this_year=tax_changed_this_year(world, faction),
        current_year=world.game_state.current_year,
    )


# ---------------------------------------------------------------------------
# Transactions


def recruit_soldiers(
    world: World, faction_id: FactionID, count: int, *, rules: RulesConfig = DEFAULT_RULES
) -> Result[RecruitResult]:
    """Add idle soldiers up to the recruit cap; recruiting is free."""

    if not _is_count(count):
        return Result.from_error(validation("recruit count must be an integer", count=count))
    if count <= 0:
        return Result.from_error(validation("recruit count must be greater than 0", count=count))

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    info = recruit_info(world, faction, rules=rules)
    if count > info.available_to_recruit:
        return Result.from_error(
            insufficient(
                "recruit count exceeds the soldier cap",
                resource="recruit_capacity",
                required=count,
                available=info.available_to_recruit,
            )
        )

    faction.idle_soldiers += count
    logger.info("faction %s recruited %d soldiers", faction_id, count)
    return Result.ok(
        RecruitResult(
            recruited=count,
            idle_soldiers=faction.idle_soldiers,
            total_soldiers=info.total_soldiers + count,
            available_to_recruit=info.available_to_recruit - count,
        )
    )


def purchase_equipment(
    world: World,
    faction_id: FactionID,
    rifles: int = 0,
    horses: int = 0,
    cannons: int = 0,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> Result[PurchaseResult]:
    """Buy equipment at fixed prices, debiting the treasury."""

    counts = {"rifles": rifles, "horses": horses, "cannons": cannons}
    if any(not _is_count(value) or value < 0 for value in counts.values()):
        return Result.from_error(validation("purchase quantities cannot be negative", **counts))
    if not any(counts.values()):
        return Result.from_error(validation("choose at least one item to purchase", **counts))

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    cost = purchase_cost(rifles, horses, cannons, rules=rules)
    if cost > faction.treasury:
        return Result.from_error(
            insufficient(
                "treasury is too low", resource="treasury", required=cost, available=faction.treasury
            )
        )

    faction.treasury -= cost
    faction.rifles += rifles
    faction.horses += horses
    faction.cannons += cannons
    logger.info("faction %s bought equipment %s for %d", faction_id, counts, cost)
    return Result.ok(
        PurchaseResult(
            rifles=faction.rifles,
            horses=faction.horses,
            cannons=faction.cannons,
            cost=cost,
            treasury=faction.treasury,
        )
    )


def disband_soldiers(
    world: World, faction_id: FactionID, count: int, *, rules: RulesConfig = DEFAULT_RULES
) -> Result[DisbandSoldiersResult]:
    """Dismiss idle soldiers, paying a fixed cost per head."""

    if not _is_count(count) or count <= 0:
        return Result.from_error(validation("disband count must be greater than 0", count=count))

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    if count > faction.idle_soldiers:
        return Result.from_error(
            insufficient(
                "disband count exceeds idle soldiers",
                resource="soldiers",
                required=count,
                available=faction.idle_soldiers,
            )
        )
    cost = count * rules.ledger.disband_cost_per_soldier
    if cost > faction.treasury:
        return Result.from_error(
            insufficient(
                "treasury is too low", resource="treasury", required=cost, available=faction.treasury
            )
        )

    faction.idle_soldiers -= count
    faction.treasury -= cost
    logger.info("faction %s disbanded %d idle soldiers", faction_id, count)
    return Result.ok(
        DisbandSoldiersResult(
            disbanded=count,
            cost=cost,
            idle_soldiers=faction.idle_soldiers,
            treasury=faction.treasury,
        )
    )


def change_tax_rate(
    world: World, faction_id: FactionID, new_rate: float, *, rules: RulesConfig = DEFAULT_RULES
) -> Result[TaxRateChange]:
    """Switch to another legal tax rate, at most once per game year."""

    if new_rate not in rules.ledger.legal_tax_rates:
        return Result.from_error(
            validation(
                "tax rate must be one of the legal values",
                new_rate=new_rate,
                legal_rates=list(rules.ledger.legal_tax_rates),
            )
        )

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    year = world.game_state.current_year
    if tax_changed_this_year(world, faction):
        return Result.from_error(
            state_gate("tax rate was already changed this year", current_year=year)
        )
    if new_rate == faction.tax_rate:
        return Result.from_error(
            validation("new tax rate equals the current one", new_rate=new_rate)
        )

    old_rate = faction.tax_rate
    faction.tax_rate = new_rate
    faction.tax_rate_changed_year = year
    logger.info("faction %s changed tax rate %.1f -> %.1f", faction_id, old_rate, new_rate)
    return Result.ok(TaxRateChange(old_rate=old_rate, new_rate=new_rate, year=year))
