"""Investment resolution for the four faction development tracks.

An officer spends one action point and some treasury to roll a D100 against
a success rate derived from the attribute bound to the track.  Points are
added to the faction counter on success (twice as many on a critical roll)
and the counter is capped at 100.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from fractions import Fraction

from gekokujo.domain.economy import level_for_points
from gekokujo.domain.enums import ErrorKind, InvestmentOutcome, InvestmentTrack
from gekokujo.domain.models import Faction, FactionID, Officer, OfficerID, World
from gekokujo.domain.results import LedgerError, Result, insufficient, not_found, validation
from gekokujo.domain.rules_config import (
    AGRICULTURE_LEVELS,
    ARMAMENT_LEVELS,
    COMMERCE_LEVELS,
    DEFAULT_RULES,
    NAVY_LEVELS,
    InvestmentRules,
    LevelTier,
    RulesConfig,
    TrackConfig,
)

logger = logging.getLogger(__name__)

TRACK_LEVELS: dict[InvestmentTrack, tuple[LevelTier, ...]] = {
    InvestmentTrack.AGRICULTURE: AGRICULTURE_LEVELS,
    InvestmentTrack.COMMERCE: COMMERCE_LEVELS,
    InvestmentTrack.NAVY: NAVY_LEVELS,
    InvestmentTrack.ARMAMENT: ARMAMENT_LEVELS,
}


@dataclass(slots=True)
class InvestmentRequest:
    """Parameters of a single investment attempt."""

    faction_id: FactionID
    officer_id: OfficerID
    track: InvestmentTrack
    amount: int | None = None


@dataclass(slots=True)
class InvestmentPreview:
    """Everything an investment would compute, short of rolling the die."""

    track: InvestmentTrack
    success_rate: float
    modifier_coefficient: float
    expected_points_on_success: int
    expected_points_on_critical: int
    expected_points_on_failure: int
    cost: float
    officer_attribute: float
    attribute_name: str
    can_execute: bool
    error: LedgerError | None = None


@dataclass(slots=True)
class InvestmentResult:
    """Committed outcome of an investment."""

    track: InvestmentTrack
    outcome: InvestmentOutcome
    roll: int
    success_rate: float
    points_gained: int
    new_points: int
    new_level: str
    cost: float
    remaining_action_points: int
    message: str


def success_rate(attribute: float, *, rules: InvestmentRules = DEFAULT_RULES.investment) -> float:
    """``clamp(0.05, 0.95, 0.5 + (attribute - 70) / 100)``."""

    raw = rules.base_success_rate + (attribute - rules.pivot_attribute) / 100
    return max(rules.min_success_rate, min(rules.max_success_rate, raw))


def modifier_coefficient(
    attribute: float, *, rules: InvestmentRules = DEFAULT_RULES.investment
) -> float:
    """Point multiplier ``1 + (attribute - 70) / 100``; not clamped."""

    return 1 + (attribute - rules.pivot_attribute) / 100


def determine_outcome(
    roll: int, rate: float, *, rules: InvestmentRules = DEFAULT_RULES.investment
) -> InvestmentOutcome:
    """Classify a D100 roll.

    Rolls below 5 are critical regardless of the rate.  The success threshold
    is rounded to shed binary noise, so ``0.57`` succeeds on 57.
    """

    if roll < rules.critical_below:
        return InvestmentOutcome.CRITICAL_SUCCESS
    if roll <= round(rate * 100, 9):
        return InvestmentOutcome.SUCCESS
    return InvestmentOutcome.FAILURE


def points_gained(
    outcome: InvestmentOutcome,
    base_points: int,
    attribute: float,
    *,
    rules: InvestmentRules = DEFAULT_RULES.investment,
) -> int:
    """Points earned for an outcome, floored and never negative."""

    if outcome is InvestmentOutcome.FAILURE:
        return 0
    multiplier = 2 if outcome is InvestmentOutcome.CRITICAL_SUCCESS else 1
    modifier = 1 + (Fraction(attribute) - rules.pivot_attribute) / 100
    return max(0, math.floor(Fraction(base_points) * multiplier * modifier))


def investment_level(track: InvestmentTrack, points: float) -> LevelTier:
    return level_for_points(TRACK_LEVELS[track], points)


def investment_status(
    faction: Faction, *, rules: RulesConfig = DEFAULT_RULES
) -> dict[str, dict[str, object]]:
    """Summarise the four counters of a faction with their tier names.

    The agriculture entry also carries the tier's growth and yield bonus
    figures for display; they do not feed into any calculation.
    """

    status: dict[str, dict[str, object]] = {}
    for track, config in rules.investment.tracks.items():
        points = getattr(faction, config.points_field)
        tier = investment_level(track, points)
        entry: dict[str, object] = {"points": points, "level": tier.level, "level_name": tier.name}
        if track is InvestmentTrack.AGRICULTURE:
            entry["growth_bonus"] = tier.growth_bonus
            entry["kokudaka_bonus"] = tier.kokudaka_bonus
        status[str(track)] = entry
    return status


def available_investors(world: World, faction_id: FactionID) -> list[Officer]:
    """Officers of a faction with at least one action point left."""

    return [officer for officer in world.faction_officers(faction_id) if officer.action_points > 0]


def _track_cost(
    request: InvestmentRequest, config: TrackConfig, rules: InvestmentRules
) -> tuple[float, int]:
    if request.track is InvestmentTrack.COMMERCE:
        amount = request.amount or 0
        return amount, max(0, amount // rules.commerce_kokudaka_per_point)
    return config.base_cost, config.base_points


def _attribute_of(officer: Officer, config: TrackConfig) -> float:
    return getattr(officer, str(config.attribute))


def _blocked(
    request: InvestmentRequest, config: TrackConfig, error: LedgerError, **figures: float
) -> InvestmentPreview:
    return InvestmentPreview(
        track=request.track,
        success_rate=figures.get("success_rate", 0),
        modifier_coefficient=figures.get("modifier_coefficient", 0),
        expected_points_on_success=0,
        expected_points_on_critical=0,
        expected_points_on_failure=0,
        cost=figures.get("cost", 0),
        officer_attribute=figures.get("officer_attribute", 0),
        attribute_name=config.attribute_name,
        can_execute=False,
        error=error,
    )


def preview_investment(
    world: World,
    request: InvestmentRequest,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> InvestmentPreview:
    """Compute the figures of an investment without rolling or committing."""

    config = rules.investment.tracks[request.track]
    faction = world.factions.get(request.faction_id)
    if faction is None:
        return _blocked(request, config, not_found("faction not found", faction_id=request.faction_id))

    officer = world.officers.get(request.officer_id)
    if officer is None:
        return _blocked(request, config, not_found("officer not found", officer_id=request.officer_id))
    if officer.faction_id != faction.id:
        return _blocked(
            request,
            config,
            not_found("officer does not belong to this faction", officer_id=officer.id),
        )
    if officer.action_points <= 0:
        return _blocked(
            request,
            config,
            insufficient("officer has no action points left", officer_id=officer.id, action_points=0),
        )

    attribute = _attribute_of(officer, config)
    rate = success_rate(attribute, rules=rules.investment)
    modifier = modifier_coefficient(attribute, rules=rules.investment)
    cost, base_points = _track_cost(request, config, rules.investment)

    if faction.treasury < cost:
        return _blocked(
            request,
            config,
            insufficient("treasury is too low", required=cost, available=faction.treasury),
            success_rate=rate,
            modifier_coefficient=modifier,
            cost=cost,
            officer_attribute=attribute,
        )
    if request.track is InvestmentTrack.COMMERCE and (
        not isinstance(request.amount, int) or request.amount <= 0
    ):
        return _blocked(
            request,
            config,
            validation("commerce investment needs a positive amount", amount=request.amount),
            success_rate=rate,
            modifier_coefficient=modifier,
            cost=cost,
            officer_attribute=attribute,
        )

    return InvestmentPreview(
        track=request.track,
        success_rate=rate,
        modifier_coefficient=modifier,
        expected_points_on_success=points_gained(
            InvestmentOutcome.SUCCESS, base_points, attribute, rules=rules.investment
        ),
        expected_points_on_critical=points_gained(
            InvestmentOutcome.CRITICAL_SUCCESS, base_points, attribute, rules=rules.investment
        ),
        expected_points_on_failure=0,
        cost=cost,
        officer_attribute=attribute,
        attribute_name=config.attribute_name,
        can_execute=True,
    )


def _outcome_message(outcome: InvestmentOutcome, points: int) -> str:
    if outcome is InvestmentOutcome.CRITICAL_SUCCESS:
        return f"critical success: gained {points} points"
    if outcome is InvestmentOutcome.SUCCESS:
        return f"success: gained {points} points"
    return "failure: no points gained"


def execute_investment(
    world: World,
    request: InvestmentRequest,
    roll: int,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> Result[InvestmentResult]:
    """Resolve an investment against ``roll`` and commit it to ``world``.

    The cost is charged and one action point consumed whatever the outcome.
    """

    preview = preview_investment(world, request, rules=rules)
    if preview.error is not None:
        logger.debug("investment rejected: %s", preview.error.message)
        return Result.from_error(preview.error)
    if not 1 <= roll <= 100:
        return Result.fail(ErrorKind.VALIDATION, "roll must be between 1 and 100", roll=roll)

    config = rules.investment.tracks[request.track]
    faction = world.factions[request.faction_id]
    officer = world.officers[request.officer_id]
    _, base_points = _track_cost(request, config, rules.investment)

    outcome = determine_outcome(roll, preview.success_rate, rules=rules.investment)
    gained = points_gained(outcome, base_points, preview.officer_attribute, rules=rules.investment)

    current = getattr(faction, config.points_field)
    new_points = max(0, min(rules.investment.max_points, current + gained))
    setattr(faction, config.points_field, new_points)
    faction.treasury -= preview.cost
    officer.action_points -= 1

    tier = investment_level(request.track, new_points)
    logger.info(
        "faction %s invested in %s: roll=%d outcome=%s points=%d->%d",
        faction.id,
        request.track,
        roll,
        outcome,
        current,
        new_points,
    )
    return Result.ok(
        InvestmentResult(
            track=request.track,
            outcome=outcome,
            roll=roll,
            success_rate=preview.success_rate,
            points_gained=gained,
            new_points=new_points,
            new_level=tier.name,
            cost=preview.cost,
            remaining_action_points=officer.action_points,
            message=_outcome_message(outcome, gained),
        )
    )
