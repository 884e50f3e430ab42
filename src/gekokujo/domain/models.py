"""Dataclasses describing every gekokujo game entity.

The rules layer operates purely on these in-memory types.  The
:class:`World` aggregate bundles the six canonical collections (factions,
territories, officers, legions, the special-product catalog and the game
clock) so that ledger operations, the economic calculator and the snapshot
store all see the same shape.

Persistence adapters translate between these dataclasses and JSON documents
(see :mod:`gekokujo.repository.json_store`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, NewType

from .enums import ActorRole, OfficerArchetype

# --- Strongly typed identifiers -------------------------------------------------

FactionID = NewType("FactionID", str)
TerritoryID = NewType("TerritoryID", str)
OfficerID = NewType("OfficerID", str)
LegionID = NewType("LegionID", str)
OperationID = NewType("OperationID", str)
SnapshotID = NewType("SnapshotID", str)
AccountingLogID = NewType("AccountingLogID", str)


# --- Core dataclasses -----------------------------------------------------------


@dataclass(slots=True)
class DiplomacyRelation:
    """Relationship a faction declares towards another faction."""

    target_faction_id: FactionID
    target_faction_name: str
    relation: str


@dataclass(slots=True)
class Buff:
    """Named effect attached to a faction (free text)."""

    name: str
    effect: str


@dataclass(slots=True)
class Faction:
    """Faction owning territory, officers, legions and an inventory."""

    id: FactionID
    name: str
    leader_name: str
    code: str
    tax_rate: float = 0.6
    treasury: float = 0
    idle_soldiers: int = 0
    rifles: int = 0
    horses: int = 0
    cannons: int = 0
    agriculture_points: int = 0
    commerce_points: int = 0
    navy_points: int = 0
    armament_points: int = 0
    industry_kokudaka: float = 0
    territory_ids: list[TerritoryID] = field(default_factory=list)
    officer_ids: list[OfficerID] = field(default_factory=list)
    legion_ids: list[LegionID] = field(default_factory=list)
    diplomacy: list[DiplomacyRelation] = field(default_factory=list)
    buffs: list[Buff] = field(default_factory=list)
    tax_rate_changed_year: int | None = None


@dataclass(slots=True)
class Territory:
    """District (郡) belonging to a province, optionally owned by a faction."""

    id: TerritoryID
    province_name: str
    district_name: str
    castle_name: str
    castle_level: int
    base_kokudaka: float
    special_product_1: str | None = None
    special_product_2: str | None = None
    special_product_3: str | None = None
    developable_product: str | None = None
    faction_id: FactionID | None = None
    garrison_legion_id: LegionID | None = None
    description: str | None = None

    @property
    def special_products(self) -> list[str]:
        """Return the filled special-product slots in slot order."""

        slots = (self.special_product_1, self.special_product_2, self.special_product_3)
        return [name for name in slots if name]


@dataclass(slots=True)
class Officer:
    """Samurai serving a faction."""

    id: OfficerID
    name: str
    archetype: OfficerArchetype
    martial: float
    civil: float
    faction_id: FactionID
    is_idle: bool = True
    action_points: int = 2
    current_legion_id: LegionID | None = None
    age: int | None = None


@dataclass(slots=True)
class Legion:
    """Military unit bundling soldiers and equipment under one commander."""

    id: LegionID
    name: str
    commander_id: OfficerID
    commander_name: str
    soldier_count: int
    rifles: int
    horses: int
    cannons: int
    location_id: TerritoryID
    location_name: str
    faction_id: FactionID


@dataclass(slots=True)
class SpecialProduct:
    """Catalog entry describing a territory special product."""

    name: str
    annual_kokudaka: float = 0
    annual_horses: int = 0
    soldier_capacity_bonus: int = 0
    kokudaka_bonus: float = 0
    other_effects: str = ""


@dataclass(slots=True)
class GameState:
    """Global game clock."""

    current_year: int = 1
    is_locked: bool = False
    admin_code: str = "admin"


@dataclass(slots=True)
class OperationRecord:
    """Append-only log entry describing one committed action."""

    id: OperationID
    timestamp: datetime
    user_id: str
    user_type: ActorRole
    action: str
    details: dict[str, Any] = field(default_factory=dict)
    faction_id: FactionID | None = None
    snapshot_id: SnapshotID | None = None


@dataclass(slots=True)
class AccountingLog:
    """Free-text bookkeeping note an admin files against a faction and year.

    ``should_calculate`` marks notes whose effects still have to be applied
    by hand when the year is settled.
    """

    id: AccountingLogID
    year: int
    faction_id: FactionID
    faction_name: str
    content: str
    should_calculate: bool
    timestamp: datetime


@dataclass(slots=True)
class Actor:
    """Already-authenticated caller handed to the core by the outer layer."""

    role: ActorRole
    user_id: str
    faction_id: FactionID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


@dataclass(slots=True)
class World:
    """Root aggregate holding every canonical collection and the clock."""

    factions: dict[FactionID, Faction] = field(default_factory=dict)
    territories: dict[TerritoryID, Territory] = field(default_factory=dict)
    officers: dict[OfficerID, Officer] = field(default_factory=dict)
    legions: dict[LegionID, Legion] = field(default_factory=dict)
    special_products: dict[str, SpecialProduct] = field(default_factory=dict)
    game_state: GameState = field(default_factory=GameState)

    def owned_territories(self, faction_id: FactionID) -> list[Territory]:
        return [t for t in self.territories.values() if t.faction_id == faction_id]

    def faction_officers(self, faction_id: FactionID) -> list[Officer]:
        return [o for o in self.officers.values() if o.faction_id == faction_id]

    def faction_legions(self, faction_id: FactionID) -> list[Legion]:
        return [legion for legion in self.legions.values() if legion.faction_id == faction_id]

    def legion_commanded_by(
        self, officer_id: OfficerID, *, exclude: LegionID | None = None
    ) -> Legion | None:
        """Return the legion an officer commands, if any."""

        for legion in self.legions.values():
            if legion.commander_id == officer_id and legion.id != exclude:
                return legion
        return None
