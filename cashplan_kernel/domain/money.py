"""
Money -- integer-cent arithmetic with a single rounding rule.

Every currency value inside the engines is an ``int`` number of cents. Values
cross into cents in exactly one way: ``round_half_up``. Interest accrual,
percent-of-income savings, weighted scores and amortization outputs all go
through it, so totals are reproducible bit-for-bit.

ROUND_HALF_UP here matches ``decimal.ROUND_HALF_UP``: ties round away from
zero (2.5 -> 3, -2.5 -> -3).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from fractions import Fraction

from cashplan_kernel.exceptions import InvalidAmountError

_CENT = Decimal("0.01")
_ONE = Decimal(1)


def round_half_up(value: Decimal | Fraction | int | float) -> int:
    """
    Round a value to the nearest integer using ROUND_HALF_UP.

    This is the ONLY sanctioned rounding function for cent amounts.
    Floats are converted through ``repr`` so ``2.675`` rounds as written.
    """
    if isinstance(value, int):
        return value
    if isinstance(value, Fraction):
        numerator, denominator = value.numerator, value.denominator
        quotient, remainder = divmod(abs(numerator), denominator)
        if remainder * 2 >= denominator:
            quotient += 1
        return quotient if numerator >= 0 else -quotient
    if isinstance(value, float):
        value = Decimal(repr(value))
    with localcontext() as ctx:
        ctx.prec = 50
        return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def mul_div_round(value: int, multiplier: int, divisor: int) -> int:
    """``round_half_up(value * multiplier / divisor)`` in exact arithmetic."""
    return round_half_up(Fraction(value * multiplier, divisor))


def percent_of_bps(amount_cents: int, basis_points: int) -> int:
    """Share of ``amount_cents`` given in basis points, rounded half-up."""
    return mul_div_round(amount_cents, basis_points, 10_000)


def monthly_interest_cents(balance_cents: int, apr_bps: int) -> int:
    """One month of simple interest: ``balance * apr_bps / 10000 / 12``."""
    return mul_div_round(balance_cents, apr_bps, 120_000)


def to_cents(dollars: Decimal | str | int | float) -> int:
    """
    Convert a decimal-dollar amount to integer cents (round-half-up).

    Raises:
        InvalidAmountError: If the value is not a number.
    """
    try:
        if isinstance(dollars, float):
            amount = Decimal(repr(dollars))
        else:
            amount = Decimal(str(dollars).strip())
    except InvalidOperation as exc:
        raise InvalidAmountError("dollars", dollars, "not a number") from exc
    if not amount.is_finite():
        raise InvalidAmountError("dollars", dollars, "not a finite number")
    return round_half_up(amount * 100)


def cents_to_dollars(cents: int) -> Decimal:
    """Render integer cents as a two-place Decimal."""
    return (Decimal(cents) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)


def require_cents(field: str, value: object, *, allow_negative: bool = False) -> int:
    """
    Validate an integer-cent input at a boundary.

    Raises:
        InvalidAmountError: If value is not an int (bool excluded) or is
            negative when ``allow_negative`` is False.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(field, value, "must be integer cents")
    if not allow_negative and value < 0:
        raise InvalidAmountError(field, value)
    return value
