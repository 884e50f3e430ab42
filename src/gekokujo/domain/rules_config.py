"""Declarative rule configuration for the gekokujo domain."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import InvestmentTrack, OfficerAttribute


@dataclass(frozen=True, slots=True)
class MaintenanceBand:
    """One row of the soldier-maintenance-ratio table."""

    min_ratio: float
    max_ratio: float
    bonus_coefficient: float
    growth_rate: float


@dataclass(frozen=True, slots=True)
class LevelTier:
    """Named tier of an investment counter (0-100 points)."""

    level: int
    name: str
    min_points: int
    max_points: int
    maintenance_modifier: float = 0.0
    growth_bonus: float = 0.0
    kokudaka_bonus: float = 0.0


MAINTENANCE_BANDS: tuple[MaintenanceBand, ...] = (
    MaintenanceBand(0.00, 0.20, 0.12, 0.03),
    MaintenanceBand(0.21, 0.45, 0.06, 0.01),
    MaintenanceBand(0.46, 0.60, 0.0, -0.01),
    MaintenanceBand(0.61, 0.80, -0.10, -0.02),
    MaintenanceBand(0.81, 0.94, -0.20, -0.04),
    MaintenanceBand(0.95, 1.00, -0.30, -0.08),
    MaintenanceBand(1.01, float("inf"), -0.40, -0.12),
)

# Shared breakpoints for every investment track.
_TIER_BOUNDS: tuple[tuple[int, int], ...] = (
    (0, 0),
    (1, 15),
    (16, 30),
    (31, 50),
    (51, 70),
    (71, 85),
    (86, 99),
    (100, 100),
)


def _tiers(names: tuple[str, ...], **columns: tuple[float, ...]) -> tuple[LevelTier, ...]:
    tiers = []
    for level, (name, (low, high)) in enumerate(zip(names, _TIER_BOUNDS, strict=True)):
        extra = {key: values[level] for key, values in columns.items()}
        tiers.append(LevelTier(level=level, name=name, min_points=low, max_points=high, **extra))
    return tuple(tiers)


ARMAMENT_LEVELS = _tiers(
    ("朽坏", "普通", "整修", "精良", "军械", "严整", "兵法", "武库"),
    maintenance_modifier=(0.20, 0.0, -0.05, -0.10, -0.20, -0.30, -0.40, -0.50),
)

# Growth and yield bonuses are display data only (see investment_status).
AGRICULTURE_LEVELS = _tiers(
    ("荒废", "开垦", "井田", "检地", "治水", "丰饶", "天府", "瑞穗"),
    growth_bonus=(-0.01, 0.0, 0.005, 0.01, 0.015, 0.02, 0.025, 0.03),
    kokudaka_bonus=(-0.05, 0.0, 0.0, 0.02, 0.04, 0.06, 0.08, 0.10),
)

COMMERCE_LEVELS = _tiers(
    ("闭塞", "通商", "市集", "商会", "繁荣", "富庶", "商都", "天下之台所"),
)

NAVY_LEVELS = _tiers(
    ("无", "渔船", "关船", "小早", "安宅船", "大安宅", "铁甲船", "日本丸"),
)


@dataclass(frozen=True, slots=True)
class EconomyRules:
    """Yield, income and maintenance constants."""

    income_factor: float = 0.4
    kokudaka_per_soldier_block: int = 10_000
    soldier_multipliers: dict[float, int] = field(
        default_factory=lambda: {0.4: 230, 0.6: 200, 0.8: 180}
    )
    default_soldier_multiplier: int = 200
    large_province_threshold: float = 300_000
    large_province_bonus: float = 20_000
    medium_province_threshold: float = 150_000
    medium_province_bonus: float = 10_000
    infantry_upkeep: int = 4
    horse_upkeep: int = 12
    rifle_upkeep: int = 3
    cannon_upkeep: int = 8
    legion_soldier_upkeep: int = 4
    officer_salary: int = 2_000


@dataclass(frozen=True, slots=True)
class TrackConfig:
    """Static parameters of one investment track."""

    attribute: OfficerAttribute
    attribute_name: str
    base_cost: int
    base_points: int
    points_field: str


@dataclass(frozen=True, slots=True)
class InvestmentRules:
    """Investment dice and track parameters."""

    pivot_attribute: int = 70
    base_success_rate: float = 0.5
    min_success_rate: float = 0.05
    max_success_rate: float = 0.95
    critical_below: int = 5
    max_points: int = 100
    commerce_kokudaka_per_point: int = 1_000
    tracks: dict[InvestmentTrack, TrackConfig] = field(
        default_factory=lambda: {
            InvestmentTrack.AGRICULTURE: TrackConfig(
                OfficerAttribute.CIVIL, "文治", 5_000, 5, "agriculture_points"
            ),
            InvestmentTrack.COMMERCE: TrackConfig(
                OfficerAttribute.CIVIL, "智略", 0, 0, "commerce_points"
            ),
            InvestmentTrack.NAVY: TrackConfig(
                OfficerAttribute.MARTIAL, "武功", 8_000, 4, "navy_points"
            ),
            InvestmentTrack.ARMAMENT: TrackConfig(
                OfficerAttribute.MARTIAL, "武勇", 4_000, 6, "armament_points"
            ),
        }
    )


@dataclass(frozen=True, slots=True)
class LedgerRules:
    """Prices and limits for the resource ledger."""

    rifle_price: int = 10
    horse_price: int = 12
    cannon_price: int = 450
    disband_cost_per_soldier: int = 2
    legal_tax_rates: tuple[float, ...] = (0.4, 0.6, 0.8)
    legion_name_pattern: str = r"^[\u4e00-\u9fa5]{1,8}$"
    max_action_points: int = 2
    max_displayed_buffs: int = 10


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level configuration container for all subsystems."""

    economy: EconomyRules = EconomyRules()
    investment: InvestmentRules = InvestmentRules()
    ledger: LedgerRules = LedgerRules()


DEFAULT_RULES = RulesConfig()
