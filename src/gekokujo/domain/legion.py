"""Legion lifecycle: create, disband, resize and re-equip.

Every operation validates completely before touching the world, so a
rejected call leaves factions, officers and legions exactly as they were.
Soldiers and equipment only ever move between a faction's inventory and its
legions; none are created or destroyed here.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass

from gekokujo.domain.enums import ErrorKind
from gekokujo.domain.models import (
    Faction,
    FactionID,
    Legion,
    LegionID,
    Officer,
    OfficerID,
    TerritoryID,
    World,
)
from gekokujo.domain.results import LedgerError, Result, insufficient, not_found, state_gate, validation
from gekokujo.domain.rules_config import DEFAULT_RULES, RulesConfig

logger = logging.getLogger(__name__)

EQUIPMENT = ("rifles", "horses", "cannons")


@dataclass(slots=True)
class CreateLegionRequest:
    """Arguments of :func:`create_legion`."""

    name: str
    commander_id: OfficerID
    soldier_count: int
    location_id: TerritoryID
    rifles: int = 0
    horses: int = 0
    cannons: int = 0


@dataclass(slots=True)
class LegionResources:
    """Soldiers and equipment moved in or out of a legion."""

    soldiers: int = 0
    rifles: int = 0
    horses: int = 0
    cannons: int = 0


@dataclass(slots=True)
class LegionCreation:
    legion: Legion
    reassigned_from: Legion | None = None


@dataclass(slots=True)
class LegionDisbandment:
    legion: Legion
    returned: LegionResources


def validate_legion_name(name: object, *, rules: RulesConfig = DEFAULT_RULES) -> LedgerError | None:
    """Return an error for an unusable legion name, ``None`` when it is fine.

    Surrounding whitespace is ignored; the remainder must be one to eight
    CJK unified ideographs.
    """

    if not isinstance(name, str) or not name.strip():
        return validation("legion name cannot be empty", field="name")
    if re.fullmatch(rules.ledger.legion_name_pattern, name.strip()) is None:
        return validation(
            "legion name must be 1-8 Chinese characters", field="name", name=name.strip()
        )
    return None


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _owned_legion(world: World, faction_id: FactionID, legion_id: LegionID) -> Legion | None:
    legion = world.legions.get(legion_id)
    if legion is None or legion.faction_id != faction_id:
        return None
    return legion


def _release(world: World, legion: Legion) -> LegionResources:
    """Return a legion's holdings to its owner and free its commander."""

    returned = LegionResources(
        soldiers=legion.soldier_count,
        rifles=legion.rifles,
        horses=legion.horses,
        cannons=legion.cannons,
    )
    owner = world.factions.get(legion.faction_id)
    if owner is not None:
        owner.idle_soldiers += legion.soldier_count
        owner.rifles += legion.rifles
        owner.horses += legion.horses
        owner.cannons += legion.cannons
        if legion.id in owner.legion_ids:
            owner.legion_ids.remove(legion.id)

    commander = world.officers.get(legion.commander_id)
    if commander is not None and commander.current_legion_id in (legion.id, None):
        commander.current_legion_id = None
        commander.is_idle = True

    for territory in world.territories.values():
        if territory.garrison_legion_id == legion.id:
            territory.garrison_legion_id = None

    del world.legions[legion.id]
    return returned


def _check_equipment(faction: Faction, demand: dict[str, int]) -> LedgerError | None:
    for item in EQUIPMENT:
        if demand[item] > getattr(faction, item):
            return insufficient(
                f"not enough {item} in inventory",
                resource=item,
                required=demand[item],
                available=getattr(faction, item),
            )
    return None


def create_legion(
    world: World,
    faction_id: FactionID,
    request: CreateLegionRequest,
    *,
    force_reassign: bool = False,
    rules: RulesConfig = DEFAULT_RULES,
) -> Result[LegionCreation]:
    """Form a new legion from a faction's idle soldiers and equipment.

    When the commander already leads a legion the call fails with
    ``CONFLICT`` unless ``force_reassign`` is set, in which case that legion
    is disbanded as part of the same commit.
    """

    error = validate_legion_name(request.name, rules=rules)
    if error is not None:
        return Result.from_error(error)

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    commander: Officer | None = world.officers.get(request.commander_id)
    if commander is None or commander.faction_id != faction_id:
        return Result.from_error(
            not_found(
                "commander not found or not in this faction", commander_id=request.commander_id
            )
        )

    conflicting = world.legion_commanded_by(commander.id)
    if conflicting is not None and not force_reassign:
        return Result.fail(
            ErrorKind.CONFLICT,
            f"{commander.name} already commands legion {conflicting.name}",
            conflicting_legion_id=conflicting.id,
            conflicting_legion_name=conflicting.name,
            commander_id=commander.id,
        )

    if not _is_count(request.soldier_count) or request.soldier_count <= 0:
        return Result.from_error(
            validation("soldier count must be greater than 0", soldier_count=request.soldier_count)
        )
    if request.soldier_count > faction.idle_soldiers:
        return Result.from_error(
            insufficient(
                "not enough idle soldiers",
                resource="soldiers",
                required=request.soldier_count,
                available=faction.idle_soldiers,
            )
        )

    demand = {item: getattr(request, item) for item in EQUIPMENT}
    if any(not _is_count(count) or count < 0 for count in demand.values()):
        return Result.from_error(validation("equipment counts cannot be negative", **demand))
    error = _check_equipment(faction, demand)
    if error is not None:
        return Result.from_error(error)

    location = world.territories.get(request.location_id)
    if location is None or location.faction_id != faction_id:
        return Result.from_error(
            not_found(
                "location not found or not owned by this faction", location_id=request.location_id
            )
        )

    if conflicting is not None:
        _release(world, conflicting)
        logger.info(
            "legion %s disbanded to reassign commander %s", conflicting.id, commander.id
        )

    legion = Legion(
        id=LegionID(uuid.uuid4().hex),
        name=request.name.strip(),
        commander_id=commander.id,
        commander_name=commander.name,
        soldier_count=request.soldier_count,
        rifles=demand["rifles"],
        horses=demand["horses"],
        cannons=demand["cannons"],
        location_id=location.id,
        location_name=location.district_name,
        faction_id=faction_id,
    )
    faction.idle_soldiers -= legion.soldier_count
    for item in EQUIPMENT:
        setattr(faction, item, getattr(faction, item) - demand[item])

    commander.current_legion_id = legion.id
    commander.is_idle = False
    world.legions[legion.id] = legion
    if legion.id not in faction.legion_ids:
        faction.legion_ids.append(legion.id)

    logger.info("faction %s created legion %s (%s)", faction_id, legion.id, legion.name)
    return Result.ok(LegionCreation(legion=legion, reassigned_from=conflicting))


def disband_legion(
    world: World, faction_id: FactionID, legion_id: LegionID
) -> Result[LegionDisbandment]:
    """Dissolve a legion, returning everything it held to the inventory."""

    legion = _owned_legion(world, faction_id, legion_id)
    if legion is None:
        return Result.from_error(not_found("legion not found", legion_id=legion_id))
    if faction_id not in world.factions:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    returned = _release(world, legion)
    logger.info("faction %s disbanded legion %s", faction_id, legion_id)
    return Result.ok(LegionDisbandment(legion=legion, returned=returned))


def update_legion_soldiers(
    world: World, faction_id: FactionID, legion_id: LegionID, new_count: int
) -> Result[Legion]:
    """Move soldiers between the inventory and a legion to reach ``new_count``."""

    legion = _owned_legion(world, faction_id, legion_id)
    if legion is None:
        return Result.from_error(not_found("legion not found", legion_id=legion_id))
    if not _is_count(new_count):
        return Result.from_error(validation("soldier count must be an integer", new_count=new_count))
    if new_count <= 0:
        return Result.from_error(
            state_gate(
                "soldier count must be positive; disband the legion instead",
                should_disband=True,
                new_count=new_count,
            )
        )

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    diff = new_count - legion.soldier_count
    if diff > faction.idle_soldiers:
        return Result.from_error(
            insufficient(
                "not enough idle soldiers",
                resource="soldiers",
                required=diff,
                available=faction.idle_soldiers,
            )
        )

    faction.idle_soldiers -= diff
    legion.soldier_count = new_count
    logger.info("legion %s resized by %+d to %d", legion_id, diff, new_count)
    return Result.ok(legion)


def update_legion_equipment(
    world: World,
    faction_id: FactionID,
    legion_id: LegionID,
    rifles: int,
    horses: int,
    cannons: int,
) -> Result[Legion]:
    """Set a legion's equipment; any single shortfall rejects the whole change."""

    legion = _owned_legion(world, faction_id, legion_id)
    if legion is None:
        return Result.from_error(not_found("legion not found", legion_id=legion_id))

    target = {"rifles": rifles, "horses": horses, "cannons": cannons}
    if any(not _is_count(count) or count < 0 for count in target.values()):
        return Result.from_error(validation("equipment counts cannot be negative", **target))

    faction = world.factions.get(faction_id)
    if faction is None:
        return Result.from_error(not_found("faction not found", faction_id=faction_id))

    diffs = {item: target[item] - getattr(legion, item) for item in EQUIPMENT}
    error = _check_equipment(faction, diffs)
    if error is not None:
        return Result.from_error(error)

    for item, diff in diffs.items():
        setattr(faction, item, getattr(faction, item) - diff)
        setattr(legion, item, target[item])

    logger.info("legion %s re-equipped: %s", legion_id, diffs)
    return Result.ok(legion)


def available_commanders(world: World, faction_id: FactionID) -> list[Officer]:
    """Officers of a faction who do not currently lead a legion."""

    return [
        officer
        for officer in world.faction_officers(faction_id)
        if world.legion_commanded_by(officer.id) is None
    ]


def faction_legions(world: World, faction_id: FactionID) -> list[Legion]:
    return world.faction_legions(faction_id)
