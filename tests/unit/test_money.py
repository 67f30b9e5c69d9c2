"""
Tests for integer-cent arithmetic and the single rounding rule.
"""

from decimal import Decimal
from fractions import Fraction

import pytest

from cashplan_kernel.domain.money import (
    cents_to_dollars,
    monthly_interest_cents,
    mul_div_round,
    percent_of_bps,
    require_cents,
    round_half_up,
    to_cents,
)
from cashplan_kernel.exceptions import InvalidAmountError


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("2.5"), 3),
            (Decimal("-2.5"), -3),
            (Decimal("2.4999"), 2),
            (Fraction(5, 2), 3),
            (Fraction(-5, 2), -3),
            (Fraction(7, 3), 2),
            (2.675, 3),
            (7, 7),
        ],
    )
    def test_ties_away_from_zero(self, value, expected):
        assert round_half_up(value) == expected

    def test_float_rounds_as_written(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(1.5) == 2


class TestInterest:
    def test_monthly_interest(self):
        # 1000.00 at 12% APR: 10.00 a month
        assert monthly_interest_cents(100_000, 1200) == 1_000

    def test_monthly_interest_rounds(self):
        # 50000 * 500 / 120000 = 208.33
        assert monthly_interest_cents(50_000, 500) == 208
        # 200000 * 2200 / 120000 = 3666.67
        assert monthly_interest_cents(200_000, 2200) == 3_667

    def test_zero_apr(self):
        assert monthly_interest_cents(100_000, 0) == 0

    def test_percent_of_bps(self):
        assert percent_of_bps(150_000, 1000) == 15_000
        assert percent_of_bps(333, 5000) == 167

    def test_mul_div_round(self):
        assert mul_div_round(1, 1, 2) == 1
        assert mul_div_round(1, 1, 3) == 0


class TestConversion:
    @pytest.mark.parametrize(
        "dollars, cents",
        [
            ("12.34", 1234),
            (12.34, 1234),
            (Decimal("0.005"), 1),
            (10, 1000),
            (" 1.10 ", 110),
        ],
    )
    def test_to_cents(self, dollars, cents):
        assert to_cents(dollars) == cents

    @pytest.mark.parametrize("bad", ["abc", "NaN", "Infinity"])
    def test_to_cents_rejects(self, bad):
        with pytest.raises(InvalidAmountError):
            to_cents(bad)

    def test_cents_to_dollars(self):
        assert cents_to_dollars(1599) == Decimal("15.99")
        assert str(cents_to_dollars(5)) == "0.05"


class TestRequireCents:
    def test_accepts_int(self):
        assert require_cents("amount", 0) == 0

    @pytest.mark.parametrize("bad", [1.0, "100", True, None])
    def test_rejects_non_int(self, bad):
        with pytest.raises(InvalidAmountError):
            require_cents("amount", bad)

    def test_rejects_negative(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            require_cents("amount", -1)
        assert exc_info.value.field == "amount"

    def test_allow_negative(self):
        assert require_cents("amount", -500, allow_negative=True) == -500
