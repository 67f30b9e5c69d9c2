"""
DTOs -- recurring definitions and the dated events expanded from them.

Responsibility:
    Immutable input shapes shared by the recurrence expander, the payoff
    simulator and the obligations read model.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - amount_cents is a non-negative int (validated at construction)
    - DatedEvent ordering is total: (date, kind precedence, id)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from cashplan_kernel.domain.money import require_cents
from cashplan_kernel.exceptions import InvalidRecurrenceError


class Frequency(str, Enum):
    """How often a recurring definition repeats."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_OFF = "one_off"


class EventKind(str, Enum):
    """
    What a dated event represents.

    Same-day events are processed in declaration order: income lands before
    bills, bills before subscriptions, subscriptions before debt minimums.
    """

    INCOME = "income"
    BILL = "bill"
    SUBSCRIPTION = "subscription"
    DEBT_MIN = "debt_min"

    @property
    def precedence(self) -> int:
        return _KIND_PRECEDENCE[self]


_KIND_PRECEDENCE: dict[EventKind, int] = {
    EventKind.INCOME: 0,
    EventKind.BILL: 1,
    EventKind.SUBSCRIPTION: 2,
    EventKind.DEBT_MIN: 3,
}


@dataclass(frozen=True)
class RecurringDefinition:
    """
    An income stream, bill, subscription or debt minimum that repeats.

    Anchors, in order of preference:
        - ``anchor_date``: explicit first (or only) occurrence
        - ``day_of_month``: monthly/yearly day, clamped to month length
        - ``day_of_week``: weekly/biweekly weekday, Monday=0

    ``essential`` left as None resolves by kind: subscriptions are
    non-essential, everything else essential.
    """

    id: str
    name: str
    amount_cents: int
    frequency: Frequency
    kind: EventKind
    essential: bool | None = None
    day_of_month: int | None = None
    day_of_week: int | None = None
    anchor_date: date | None = None

    def __post_init__(self) -> None:
        require_cents(f"{self.id}.amount_cents", self.amount_cents)
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise InvalidRecurrenceError(
                self.id, f"day_of_month {self.day_of_month} outside 1..31"
            )
        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise InvalidRecurrenceError(
                self.id, f"day_of_week {self.day_of_week} outside 0..6"
            )
        if self.frequency == Frequency.ONE_OFF and self.anchor_date is None:
            raise InvalidRecurrenceError(self.id, "one-off requires anchor_date")
        if self.frequency == Frequency.MONTHLY and (
            self.day_of_month is None and self.anchor_date is None
        ):
            raise InvalidRecurrenceError(
                self.id, "monthly requires day_of_month or anchor_date"
            )

    @property
    def is_essential(self) -> bool:
        if self.essential is not None:
            return self.essential
        return self.kind != EventKind.SUBSCRIPTION


@dataclass(frozen=True)
class DatedEvent:
    """One occurrence of a recurring definition on a concrete date."""

    id: str
    date: date
    amount_cents: int
    name: str
    kind: EventKind
    essential: bool = True

    @property
    def sort_key(self) -> tuple[date, int, str]:
        return (self.date, self.kind.precedence, self.id)
