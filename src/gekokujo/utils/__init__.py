"""Utility functions for gekokujo."""

from gekokujo.utils.rng import d100, generate_seed, roll_dice

__all__ = [
    "d100",
    "generate_seed",
    "roll_dice",
]
