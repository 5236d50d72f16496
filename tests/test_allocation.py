"""
Tests for the shared allocation and formatting helpers.
"""

import math

import pytest

from business_logic.allocation import (
    distribute_proportionally,
    floor_safe,
    format_amount,
    format_money,
    is_finite_number,
    largest_index,
    round_half_up,
    values_equal,
)


class TestDistributeProportionally:
    """Test integer-safe proportional redistribution."""

    def test_rescales_to_exact_total(self):
        """Parts always sum to exactly the requested total."""
        parts = distribute_proportionally([50, 30, 10], 100)

        assert sum(parts) == 100
        assert parts == [56, 33, 11]

    def test_remainder_goes_to_first_largest(self):
        """Ties for the largest part are broken by array order."""
        parts = distribute_proportionally([1, 1, 1], 100)

        assert parts == [34, 33, 33]

    def test_all_zero_weights_split_evenly(self):
        """Zero weights give an even split with the remainder on the first part."""
        parts = distribute_proportionally([0, 0, 0], 10)

        assert parts == [4, 3, 3]

    def test_negative_weights_count_as_zero(self):
        parts = distribute_proportionally([-5, 10], 100)

        assert parts == [0, 100]

    def test_empty_weights(self):
        assert distribute_proportionally([], 100) == []

    @pytest.mark.parametrize("weights,total", [
        ([33.3, 33.3, 33.3], 100),
        ([1, 2, 3, 4, 5, 6, 7], 1000),
        ([0.1, 99.9], 7),
        ([5000, 10000], 20000),
    ])
    def test_sum_invariant(self, weights, total):
        """The sum invariant holds for awkward weights."""
        assert sum(distribute_proportionally(weights, total)) == total


class TestNumberHelpers:
    """Test rounding, guards and formatting."""

    def test_round_half_up(self):
        """Halves round up like JavaScript Math.round."""
        assert round_half_up(26.5) == 27
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    def test_floor_safe_absorbs_float_noise(self):
        assert floor_safe(55.99999999999) == 56
        assert floor_safe(266.67) == 266

    def test_is_finite_number(self):
        assert is_finite_number(1.5)
        assert is_finite_number(0)
        assert not is_finite_number(math.nan)
        assert not is_finite_number(math.inf)
        assert not is_finite_number(True)
        assert not is_finite_number("15000")
        assert not is_finite_number(None)

    def test_largest_index_first_wins(self):
        assert largest_index([3, 7, 7, 1]) == 1

    def test_values_equal(self):
        assert values_equal(0.1 + 0.2, 0.3)
        assert not values_equal(1, 2)
        assert values_equal(None, None)
        assert not values_equal(None, 0)

    def test_formatting(self):
        assert format_amount(15000) == "15,000"
        assert format_amount(740.74) == "740.74"
        assert format_amount(750.0) == "750"
        assert format_money(20000) == "$20,000"
        assert format_money(None) == "n/a"
