"""
Tests for the debt amortization estimator.
"""

from datetime import date

from cashplan_engines.amortization import (
    estimate_payoff_date,
    months_to_payoff,
    required_payment_for_target,
)


class TestMonthsToPayoff:
    def test_zero_balance(self):
        assert months_to_payoff(0, 1999, 5000) == 0

    def test_non_positive_payment_is_impossible(self):
        assert months_to_payoff(100_000, 1200, 0) is None

    def test_zero_apr_is_ceiling_division(self):
        assert months_to_payoff(100_000, 0, 30_000) == 4
        assert months_to_payoff(90_000, 0, 30_000) == 3

    def test_payment_not_exceeding_interest_is_impossible(self):
        # 1000.00 at 24% accrues exactly 20.00 a month
        assert months_to_payoff(100_000, 2400, 2000) is None
        assert months_to_payoff(100_000, 2400, 1500) is None

    def test_closed_form(self):
        # 1000.00 at 12% paying 100.00: ~10.59 months
        assert months_to_payoff(100_000, 1200, 10_000) == 11


class TestRequiredPaymentForTarget:
    def test_zero_balance(self):
        assert required_payment_for_target(0, 1200, 12) == 0

    def test_single_month_pays_everything(self):
        assert required_payment_for_target(123_456, 1999, 1) == 123_456
        assert required_payment_for_target(123_456, 1999, 0) == 123_456

    def test_zero_apr_rounds_half_up(self):
        assert required_payment_for_target(100_000, 0, 3) == 33_333
        assert required_payment_for_target(100, 0, 8) == 13

    def test_annuity_payment(self):
        # 1000.00 at 12% over 12 months: 88.85
        assert required_payment_for_target(100_000, 1200, 12) == 8885

    def test_payment_is_consistent_with_months_to_payoff(self):
        # Cent rounding of the payment can push payoff into one extra month
        payment = required_payment_for_target(250_000, 1899, 18)
        assert months_to_payoff(250_000, 1899, payment) in (18, 19)


class TestEstimatePayoffDate:
    def test_adds_months(self):
        assert estimate_payoff_date(90_000, 0, 30_000, date(2025, 1, 31)) == date(2025, 4, 30)

    def test_unreachable(self):
        assert estimate_payoff_date(100_000, 2400, 1000, date(2025, 1, 1)) is None
