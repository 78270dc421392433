"""Earnings calculator tests: proportional reward, clamping, truncation."""

from decimal import Decimal

import pytest

from watchearn.earnings import is_complete, reward, sum_to_money, to_money
from watchearn.errors import ValidationError


class TestReward:
    def test_zero_elapsed_earns_nothing(self):
        assert reward(0, 30, Decimal("0.50")) == Decimal("0")

    def test_partial_is_proportional(self):
        """12 of 30 seconds of a 0.50 ad pays 0.20."""
        assert reward(12, 30, Decimal("0.50")) == Decimal("0.200000")

    def test_full_duration_pays_cap(self):
        assert reward(30, 30, Decimal("0.50")) == Decimal("0.50")

    def test_overshoot_is_clamped(self):
        assert reward(45, 30, Decimal("0.50")) == Decimal("0.50")

    def test_rounding_never_over_credits(self):
        """1/3 of 1.00 truncates to 0.333333, not 0.333334."""
        assert reward(10, 30, Decimal("1.00")) == Decimal("0.333333")
        assert reward(20, 30, Decimal("1.00")) == Decimal("0.666666")

    def test_monotone_in_elapsed(self):
        values = [reward(t, 37, Decimal("0.73")) for t in range(0, 50)]
        assert values == sorted(values)
        assert values[-1] == Decimal("0.73")

    def test_accepts_float_and_str_caps(self):
        assert reward(15, 30, "0.5") == Decimal("0.250000")
        assert reward(15, 30, 0.5) == Decimal("0.250000")

    def test_zero_duration_rejected(self):
        with pytest.raises(ValidationError, match="duration"):
            reward(5, 0, Decimal("1"))

    def test_negative_elapsed_rejected(self):
        with pytest.raises(ValidationError):
            reward(-1, 30, Decimal("1"))


class TestMoneyHelpers:
    def test_to_money_truncates(self):
        assert to_money("0.1234569") == Decimal("0.123456")

    def test_sum_to_money_rounds_float_sums(self):
        """Binary float sums just below the exact value round back up."""
        assert sum_to_money(0.7 + 0.1) == Decimal("0.800000")
        assert sum_to_money(0.1 + 0.2) == Decimal("0.300000")

    def test_sum_to_money_none_is_zero(self):
        assert sum_to_money(None) == Decimal("0")


class TestIsComplete:
    def test_boundaries(self):
        assert not is_complete(29, 30)
        assert is_complete(30, 30)
        assert is_complete(31, 30)
