"""Tests for the dice used by investments.

Tests cover:
- Determinism (same seed -> same result)
- Dice notation parsing and validation
- The d100 roller handed to the game service
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from gekokujo.utils.rng import d100, generate_seed, roll_dice


class TestGenerateSeed:
    """Tests for generate_seed function."""

    def test_basic_seed_generation(self):
        assert generate_seed(1, "oda", "invest_navy") == "1:oda:invest_navy"

    def test_different_parameters_produce_different_seeds(self):
        seeds = {
            generate_seed(1, "oda", "invest_navy"),
            generate_seed(2, "oda", "invest_navy"),
            generate_seed(1, "takeda", "invest_navy"),
            generate_seed(1, "oda", "invest_commerce"),
        }
        assert len(seeds) == 4

    @pytest.mark.parametrize("year", [0, -3])
    def test_non_positive_year_raises_error(self, year):
        with pytest.raises(ValueError, match="year must be positive"):
            generate_seed(year, "oda", "invest_navy")


class TestRollDice:
    """Tests for roll_dice function."""

    def test_same_seed_same_result(self):
        seed = generate_seed(3, "oda", "invest_agriculture")
        assert roll_dice(seed) == roll_dice(seed)

    def test_result_structure(self):
        result = roll_dice("seed", "3d6")
        assert result["notation"] == "3d6"
        assert result["seed"] == "seed"
        assert len(result["rolls"]) == 3
        assert result["total"] == sum(result["rolls"])

    @pytest.mark.parametrize("notation", ["d100", "1x100", "0d6", "2d0", "abc", ""])
    def test_invalid_notation_raises_error(self, notation):
        with pytest.raises(ValueError):
            roll_dice("seed", notation)

    def test_uppercase_notation_is_accepted(self):
        assert 1 <= roll_dice("seed", "1D100")["total"] <= 100

    @given(st.text(min_size=1, max_size=40))
    def test_d100_stays_in_range(self, seed):
        assert 1 <= roll_dice(seed)["total"] <= 100


class TestD100:
    """Tests for the d100 roller."""

    def test_matches_roll_dice_total(self):
        seed = generate_seed(2, "takeda", "invest_navy_baba_2")
        assert d100(seed) == roll_dice(seed, "1d100")["total"]

    def test_action_points_change_the_roll_stream(self):
        rolls = {d100(generate_seed(1, "oda", f"invest_commerce_niwa_{ap}")) for ap in range(1, 40)}
        assert len(rolls) > 1

    @given(st.text(max_size=40))
    def test_stays_in_range(self, seed):
        assert 1 <= d100(seed) <= 100
