"""Deterministic dice for investment rolls.

Every investment roll is derived from a seed built out of game state (year,
faction, officer, track and the officer's remaining action points), so the
same attempt always produces the same roll.  A disputed turn can be replayed
after a rollback, and the seed is stored with the operation record.  The
investment rules never draw on their own; the game service computes the seed
and passes the roll in.

Examples:
    >>> seed = generate_seed(year=3, faction_id="oda", context="invest_agriculture")
    >>> roll_dice(seed, "1d100")["total"] == roll_dice(seed, "1d100")["total"]
    True
"""

from __future__ import annotations

import hashlib
import random
import re
from typing import Any


def generate_seed(year: int, faction_id: str, context: str) -> str:
    """Generate a deterministic seed from game state.

    Format: "year:faction_id:context"

    Args:
        year: Current game year (starts at 1)
        faction_id: Faction the roll is made for
        context: What the roll is for (e.g., 'invest_navy_officer_7')

    Returns:
        Seed string in format "year:faction_id:context"

    Examples:
        >>> generate_seed(1, "takeda", "invest_navy")
        '1:takeda:invest_navy'

    Raises:
        ValueError: If year is not positive
    """
    if year < 1:
        raise ValueError(f"year must be positive, got {year}")

    return f"{year}:{faction_id}:{context}"


def _seed_to_int(seed: str) -> int:
    """Convert seed string to a stable 64-bit integer for random.Random()."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    # Use first 8 bytes for a 64-bit integer
    return int.from_bytes(digest[:8], "big", signed=False)


def _parse_dice_notation(notation: str) -> tuple[int, int]:
    """Parse dice notation like '1d100' into (num_dice, num_sides).

    Raises:
        ValueError: If notation is invalid or values are non-positive

    Examples:
        >>> _parse_dice_notation("1d100")
        (1, 100)
    """
    match = re.match(r"^(\d+)d(\d+)$", notation.lower())
    if not match:
        raise ValueError(
            f"Invalid dice notation: '{notation}'. Expected format: NdM (e.g., '1d100', '2d6')"
        )

    num_dice = int(match.group(1))
    num_sides = int(match.group(2))

    if num_dice <= 0:
        raise ValueError(f"Number of dice must be positive, got {num_dice}")
    if num_sides <= 0:
        raise ValueError(f"Number of sides must be positive, got {num_sides}")

    return num_dice, num_sides


def roll_dice(seed: str, notation: str = "1d100") -> dict[str, Any]:
    """Roll dice with a deterministic seed.

    The same seed and notation always produce the same results.

    Returns:
        Dictionary containing:
            - notation: The dice notation used
            - rolls: List of individual die rolls
            - total: Sum of all rolls
            - seed: The seed used

    Raises:
        ValueError: If dice notation is invalid
    """
    num_dice, num_sides = _parse_dice_notation(notation)

    rng = random.Random(_seed_to_int(seed))
    rolls = [rng.randint(1, num_sides) for _ in range(num_dice)]

    return {
        "notation": notation,
        "rolls": rolls,
        "total": sum(rolls),
        "seed": seed,
    }


def d100(seed: str) -> int:
    """Return the 1d100 total for ``seed``."""
    return roll_dice(seed, "1d100")["total"]
