"""
Module: cashplan_engines.amortization
Responsibility:
    Closed-form debt amortization: months to pay off a balance at a fixed
    payment, and the fixed payment that retires a balance in N months.

Architecture position:
    Engines -- pure calculation layer, zero I/O. Used by the payoff
    simulator for target-date rules and by callers for payoff estimates.

Invariants enforced:
    - Inputs and outputs are integer cents; logs and powers run in double
      precision and the result is rounded half-up to cents exactly once.
    - Impossible payoff (payment at or below one month's interest) is
      reported as None, never raised.
"""

from __future__ import annotations

import math
from datetime import date
from fractions import Fraction

from cashplan_kernel.domain.dates import add_months
from cashplan_kernel.domain.money import monthly_interest_cents, round_half_up

# Absorbs float noise like 5.000000000001 before ceil
_CEIL_PRECISION = 9


def _monthly_rate(apr_bps: int) -> float:
    return apr_bps / 10_000 / 12


def months_to_payoff(
    balance_cents: int,
    apr_bps: int,
    monthly_payment_cents: int,
) -> int | None:
    """
    Whole months needed to retire ``balance_cents`` paying a fixed amount.

    Returns:
        0 if the balance is already non-positive; None if the payment is
        non-positive or does not exceed the first month's interest;
        otherwise ``ceil(-ln(1 - r*B/P) / ln(1 + r))`` (``ceil(B/P)`` at 0%).
    """
    if balance_cents <= 0:
        return 0
    if monthly_payment_cents <= 0:
        return None
    if apr_bps <= 0:
        return -(-balance_cents // monthly_payment_cents)

    if monthly_payment_cents <= monthly_interest_cents(balance_cents, apr_bps):
        return None

    rate = _monthly_rate(apr_bps)
    ratio = rate * balance_cents / monthly_payment_cents
    if ratio >= 1:
        return None
    months = -math.log(1 - ratio) / math.log(1 + rate)
    return math.ceil(round(months, _CEIL_PRECISION))


def required_payment_for_target(
    balance_cents: int,
    apr_bps: int,
    months_remaining: int,
) -> int:
    """
    Fixed monthly payment that retires the balance in ``months_remaining``.

    The full balance when ``months_remaining <= 1``; ``balance / n`` at 0%;
    otherwise the annuity payment ``r*B / (1 - (1 + r)**-n)``. Rounded
    half-up to cents.
    """
    if balance_cents <= 0:
        return 0
    if months_remaining <= 1:
        return balance_cents
    if apr_bps <= 0:
        return round_half_up(Fraction(balance_cents, months_remaining))

    rate = _monthly_rate(apr_bps)
    denominator = 1 - math.pow(1 + rate, -months_remaining)
    if denominator <= 0:
        return balance_cents
    return round_half_up(rate * balance_cents / denominator)


def estimate_payoff_date(
    balance_cents: int,
    apr_bps: int,
    monthly_payment_cents: int,
    start: date,
) -> date | None:
    """``start`` plus ``months_to_payoff`` months, or None if unreachable."""
    months = months_to_payoff(balance_cents, apr_bps, monthly_payment_cents)
    if months is None:
        return None
    return add_months(start, months)
