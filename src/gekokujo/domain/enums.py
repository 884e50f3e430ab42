"""Enumerations shared across the gekokujo domain."""

from __future__ import annotations

from enum import StrEnum


class OfficerArchetype(StrEnum):
    """Officer specialisations."""

    WARRIOR = "warrior"
    STRATEGIST = "strategist"


class ActorRole(StrEnum):
    """Roles an already-authenticated caller can hold."""

    ADMIN = "admin"
    PLAYER = "player"


class InvestmentTrack(StrEnum):
    """The four investment subsystems of a faction."""

    AGRICULTURE = "agriculture"
    COMMERCE = "commerce"
    NAVY = "navy"
    ARMAMENT = "armament"


class InvestmentOutcome(StrEnum):
    """Result tiers of a D100 investment roll."""

    CRITICAL_SUCCESS = "critical_success"
    SUCCESS = "success"
    FAILURE = "failure"


class OfficerAttribute(StrEnum):
    """Officer attribute an investment track is bound to."""

    MARTIAL = "martial"
    CIVIL = "civil"


class ErrorKind(StrEnum):
    """Machine-checkable category of an expected failure."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INSUFFICIENT_RESOURCE = "insufficient_resource"
    STATE_GATE = "state_gate"
    NOT_FOUND_CATALOG = "not_found_catalog"


class OperationAction(StrEnum):
    """Action names written to the operation log."""

    CREATE_LEGION = "create_legion"
    DISBAND_LEGION = "disband_legion"
    UPDATE_LEGION_SOLDIERS = "update_legion_soldiers"
    UPDATE_LEGION_EQUIPMENT = "update_legion_equipment"
    RECRUIT_SOLDIERS = "recruit_soldiers"
    PURCHASE_EQUIPMENT = "purchase_equipment"
    DISBAND_SOLDIERS = "disband_soldiers"
    CHANGE_TAX_RATE = "change_tax_rate"
    INVEST = "invest"
    ADVANCE_YEAR = "advance_year"
    LOCK_GAME = "lock_game"
    UNLOCK_GAME = "unlock_game"
    RESTORE_SNAPSHOT = "restore_snapshot"
    ROLLBACK = "rollback"
