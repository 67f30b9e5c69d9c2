"""
Obligations due in a date window.

Sums every bill, subscription and debt minimum occurrence dated inside
``[start, end]`` (inclusive both ends). Income definitions are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from cashplan_engines.recurrence import expand_between
from cashplan_kernel.domain.dtos import EventKind, RecurringDefinition

OBLIGATION_KINDS = frozenset({EventKind.BILL, EventKind.SUBSCRIPTION, EventKind.DEBT_MIN})


def obligations_due_cents(
    definitions: Iterable[RecurringDefinition],
    start: date,
    end: date,
) -> int:
    total = 0
    for definition in definitions:
        if definition.kind not in OBLIGATION_KINDS:
            continue
        total += sum(e.amount_cents for e in expand_between(definition, start, end))
    return total
