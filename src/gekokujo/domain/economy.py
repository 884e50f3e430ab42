"""Economic calculator.

Pure functions that derive every displayed economic figure of a faction from
its territories, officers, legions and the special-product catalog.  Nothing
here touches storage or mutates its inputs.

Formulas:

* surface kokudaka = territory x (1 + bonus coefficient) + special products
  + integration bonus + industry
* income = surface kokudaka x tax rate x 0.4
* recruit cap = floor(territory / 10000 x multiplier(tax rate))
  + special-product soldier bonus
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from fractions import Fraction

from gekokujo.domain.models import Faction, Legion, SpecialProduct, Territory, World
from gekokujo.domain.rules_config import (
    ARMAMENT_LEVELS,
    DEFAULT_RULES,
    MAINTENANCE_BANDS,
    EconomyRules,
    LevelTier,
    MaintenanceBand,
    RulesConfig,
)


@dataclass(slots=True)
class MaintenanceCost:
    """Annual upkeep broken down by item."""

    infantry_cost: float
    horse_cost: float
    rifle_cost: float
    cannon_cost: float
    legion_extra_cost: float
    officer_salary: float
    subtotal: float
    armament_modifier: float
    total: float


@dataclass(slots=True)
class FactionCalculation:
    """Every derived figure shown on a faction dashboard."""

    territory_kokudaka: float
    special_product_kokudaka: float
    special_product_soldier_bonus: int
    special_product_horses: int
    integration_bonus: float
    bonus_coefficient: float
    growth_rate: float
    surface_kokudaka: float
    income: float
    max_recruitable_soldiers: int
    total_soldiers: int
    legion_soldiers: int
    soldier_maintenance_ratio: float
    total_rifles: int
    total_horses: int
    total_cannons: int
    maintenance_cost: MaintenanceCost
    armament_level: LevelTier


# ---------------------------------------------------------------------------
# Yield


def territory_kokudaka(territories: Iterable[Territory]) -> float:
    """Sum of the base yields of the given territories."""

    return sum((t.base_kokudaka for t in territories), 0)


def _catalog_sum(
    territories: Iterable[Territory],
    catalog: Mapping[str, SpecialProduct],
    attribute: str,
) -> float:
    total = 0
    for territory in territories:
        for product_name in territory.special_products:
            product = catalog.get(product_name)
            if product is not None:
                total += getattr(product, attribute)
    return total


def special_product_kokudaka(
    territories: Iterable[Territory], catalog: Mapping[str, SpecialProduct]
) -> float:
    """Annual yield of every special-product slot; unknown names count 0."""

    return _catalog_sum(territories, catalog, "annual_kokudaka")


def special_product_soldier_bonus(
    territories: Iterable[Territory], catalog: Mapping[str, SpecialProduct]
) -> int:
    return int(_catalog_sum(territories, catalog, "soldier_capacity_bonus"))


def special_product_horses(
    territories: Iterable[Territory], catalog: Mapping[str, SpecialProduct]
) -> int:
    return int(_catalog_sum(territories, catalog, "annual_horses"))


def fully_controlled_provinces(
    owned: Iterable[Territory], all_territories: Iterable[Territory]
) -> dict[str, float]:
    """Return ``{province: total base yield}`` for every fully owned province."""

    owned_counts: dict[str, int] = defaultdict(int)
    for territory in owned:
        owned_counts[territory.province_name] += 1

    province_counts: dict[str, int] = defaultdict(int)
    province_yield: dict[str, float] = defaultdict(float)
    for territory in all_territories:
        province_counts[territory.province_name] += 1
        province_yield[territory.province_name] += territory.base_kokudaka

    return {
        province: province_yield[province]
        for province, count in owned_counts.items()
        if province_counts.get(province, 0) == count and count > 0
    }


def integration_bonus(
    owned: Sequence[Territory],
    all_territories: Sequence[Territory],
    *,
    rules: EconomyRules = DEFAULT_RULES.economy,
) -> float:
    """Tiered reward for every province the faction owns entirely."""

    bonus = 0
    for province_yield in fully_controlled_provinces(owned, all_territories).values():
        if province_yield >= rules.large_province_threshold:
            bonus += rules.large_province_bonus
        elif province_yield >= rules.medium_province_threshold:
            bonus += rules.medium_province_bonus
    return bonus


# ---------------------------------------------------------------------------
# Soldiers


def soldier_multiplier(tax_rate: float, *, rules: EconomyRules = DEFAULT_RULES.economy) -> int:
    return rules.soldier_multipliers.get(tax_rate, rules.default_soldier_multiplier)


def max_recruitable_soldiers(
    territory_yield: float,
    tax_rate: float,
    soldier_bonus: int = 0,
    *,
    rules: EconomyRules = DEFAULT_RULES.economy,
) -> int:
    multiplier = soldier_multiplier(tax_rate, rules=rules)
    base = math.floor(
        Fraction(territory_yield) * multiplier / rules.kokudaka_per_soldier_block
    )
    return base + soldier_bonus


def soldier_maintenance_ratio(total_soldiers: int, max_soldiers: int) -> float:
    """Soldiers over the recruit cap; not clamped, may exceed 1."""

    if max_soldiers <= 0:
        return 1 if total_soldiers > 0 else 0
    return total_soldiers / max_soldiers


def maintenance_band(
    ratio: float, bands: Sequence[MaintenanceBand] = MAINTENANCE_BANDS
) -> MaintenanceBand:
    """Return the band row for a maintenance ratio.

    Any raw ratio above 1.00 lands in the open-ended last band.  Everything
    else is clamped into [0, 1] and matched against the upper bounds in order,
    so a value falling between two listed bounds belongs to the next band.
    """

    if ratio > 1.0:
        return bands[-1]
    clamped = max(0.0, min(1.0, ratio))
    for band in bands:
        if clamped <= band.max_ratio:
            return band
    return bands[-1]  # pragma: no cover - last band is unbounded


def bonus_coefficient(ratio: float) -> float:
    return maintenance_band(ratio).bonus_coefficient


def growth_rate(ratio: float) -> float:
    return maintenance_band(ratio).growth_rate


def legion_soldiers(legions: Iterable[Legion]) -> int:
    return sum(legion.soldier_count for legion in legions)


def total_soldiers(faction: Faction, legions: Iterable[Legion]) -> int:
    """Idle inventory plus everyone serving in a legion."""

    return faction.idle_soldiers + legion_soldiers(legions)


# ---------------------------------------------------------------------------
# Money


def surface_kokudaka(
    territory_yield: float,
    coefficient: float,
    special_yield: float,
    integration: float,
    industry: float,
) -> float:
    return territory_yield * (1 + coefficient) + special_yield + integration + industry


def income(
    surface: float, tax_rate: float, *, rules: EconomyRules = DEFAULT_RULES.economy
) -> float:
    return surface * tax_rate * rules.income_factor


def level_for_points(levels: Sequence[LevelTier], points: float) -> LevelTier:
    """Return the tier whose range contains ``points``.

    Values below zero map to the first tier and values above 100 to the last.
    """

    for tier in levels:
        if points <= tier.max_points:
            return tier
    return levels[-1]


def armament_level(points: float) -> LevelTier:
    return level_for_points(ARMAMENT_LEVELS, points)


def maintenance_cost(
    *,
    total_soldiers: int,
    legion_soldiers: int,
    horses: int,
    rifles: int,
    cannons: int,
    officer_count: int,
    armament_points: float,
    rules: EconomyRules = DEFAULT_RULES.economy,
) -> MaintenanceCost:
    """Annual upkeep; officer salaries are not affected by the armament level."""

    infantry = total_soldiers * rules.infantry_upkeep
    horse = horses * rules.horse_upkeep
    rifle = rifles * rules.rifle_upkeep
    cannon = cannons * rules.cannon_upkeep
    legion_extra = legion_soldiers * rules.legion_soldier_upkeep
    salary = officer_count * rules.officer_salary

    military = infantry + horse + rifle + cannon + legion_extra
    modifier = armament_level(armament_points).maintenance_modifier

    return MaintenanceCost(
        infantry_cost=infantry,
        horse_cost=horse,
        rifle_cost=rifle,
        cannon_cost=cannon,
        legion_extra_cost=legion_extra,
        officer_salary=salary,
        subtotal=military + salary,
        armament_modifier=modifier,
        total=military * (1 + modifier) + salary,
    )


# ---------------------------------------------------------------------------
# Aggregate


def calculate_faction(
    world: World,
    faction: Faction,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> FactionCalculation:
    """Compute every dashboard figure for ``faction`` from ``world``."""

    owned = world.owned_territories(faction.id)
    everything = list(world.territories.values())
    legions = world.faction_legions(faction.id)
    officers = world.faction_officers(faction.id)
    catalog = world.special_products

    base_yield = territory_kokudaka(owned)
    special_yield = special_product_kokudaka(owned, catalog)
    soldier_bonus = special_product_soldier_bonus(owned, catalog)
    integration = integration_bonus(owned, everything, rules=rules.economy)

    cap = max_recruitable_soldiers(base_yield, faction.tax_rate, soldier_bonus, rules=rules.economy)
    in_legions = legion_soldiers(legions)
    soldiers = faction.idle_soldiers + in_legions
    ratio = soldier_maintenance_ratio(soldiers, cap)
    band = maintenance_band(ratio)

    surface = surface_kokudaka(
        base_yield,
        band.bonus_coefficient,
        special_yield,
        integration,
        faction.industry_kokudaka,
    )

    rifles = faction.rifles + sum(legion.rifles for legion in legions)
    horses = faction.horses + sum(legion.horses for legion in legions)
    cannons = faction.cannons + sum(legion.cannons for legion in legions)

    upkeep = maintenance_cost(
        total_soldiers=soldiers,
        legion_soldiers=in_legions,
        horses=horses,
        rifles=rifles,
        cannons=cannons,
        officer_count=len(officers),
        armament_points=faction.armament_points,
        rules=rules.economy,
    )

    return FactionCalculation(
        territory_kokudaka=base_yield,
        special_product_kokudaka=special_yield,
        special_product_soldier_bonus=soldier_bonus,
        special_product_horses=special_product_horses(owned, catalog),
        integration_bonus=integration,
        bonus_coefficient=band.bonus_coefficient,
        growth_rate=band.growth_rate,
        surface_kokudaka=surface,
        income=income(surface, faction.tax_rate, rules=rules.economy),
        max_recruitable_soldiers=cap,
        total_soldiers=soldiers,
        legion_soldiers=in_legions,
        soldier_maintenance_ratio=ratio,
        total_rifles=rifles,
        total_horses=horses,
        total_cannons=cannons,
        maintenance_cost=upkeep,
        armament_level=armament_level(faction.armament_points),
    )
