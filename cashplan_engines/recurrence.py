"""
Module: cashplan_engines.recurrence
Responsibility:
    Expand recurring definitions (income streams, bills, subscriptions, debt
    minimums) into dated point events over a horizon.

Architecture position:
    Engines -- pure calculation layer, zero I/O. Leaf: depends only on the
    kernel domain types and calendar helpers.

Invariants enforced:
    - Window is inclusive on both ends: [start, add_months(start, horizon)].
    - Output is sorted by (date, kind precedence, id).
    - Monthly dates are computed per month from the anchor day and clamped
      to each month's length; a short month never shifts later months.
    - Yearly anchors are re-based forward a year at a time until on or
      after start; Feb 29 becomes Feb 28 in non-leap years.
    - One-off definitions emit at most one event.

Failure modes:
    - InvalidHorizonError for a negative horizon.
    - InvalidRecurrenceError when a definition has no usable anchor for its
      frequency.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, timedelta

from cashplan_kernel.domain.dates import add_months, clamp_day
from cashplan_kernel.domain.dtos import DatedEvent, Frequency, RecurringDefinition
from cashplan_kernel.exceptions import InvalidHorizonError, InvalidRecurrenceError
from cashplan_kernel.logging_config import get_logger

logger = get_logger("engines.recurrence")

_STEP_DAYS = {Frequency.WEEKLY: 7, Frequency.BIWEEKLY: 14}

# Longest gap between two occurrences of any frequency, plus slack.
_MAX_GAP = timedelta(days=400)


def _weekly_dates(
    definition: RecurringDefinition,
    lower: date,
    upper: date,
) -> Iterator[date]:
    step = _STEP_DAYS[definition.frequency]
    if definition.anchor_date is not None:
        base = definition.anchor_date
    elif definition.day_of_week is not None:
        base = lower + timedelta(days=(definition.day_of_week - lower.weekday()) % 7)
    else:
        base = lower

    if base < lower:
        skipped = -(-(lower - base).days // step)
        base += timedelta(days=skipped * step)

    cursor = base
    while cursor <= upper:
        yield cursor
        cursor += timedelta(days=step)


def _monthly_dates(
    definition: RecurringDefinition,
    lower: date,
    upper: date,
) -> Iterator[date]:
    day = definition.day_of_month
    if day is None:
        day = definition.anchor_date.day  # validated non-None for MONTHLY
    if definition.anchor_date is not None and definition.anchor_date > lower:
        lower = definition.anchor_date

    month_index = 0
    while True:
        month_start = add_months(date(lower.year, lower.month, 1), month_index)
        if month_start > upper:
            return
        candidate = clamp_day(month_start.year, month_start.month, day)
        if lower <= candidate <= upper:
            yield candidate
        month_index += 1


def _yearly_dates(
    definition: RecurringDefinition,
    lower: date,
    upper: date,
    start: date,
) -> Iterator[date]:
    if definition.anchor_date is not None:
        base_year = definition.anchor_date.year
        month, day = definition.anchor_date.month, definition.anchor_date.day
    else:
        base_year = start.year
        month = start.month
        day = definition.day_of_month or start.day

    years = 0
    candidate = clamp_day(base_year, month, day)
    while candidate < lower:
        years += 1
        candidate = clamp_day(base_year + years, month, day)
    while candidate <= upper:
        yield candidate
        years += 1
        candidate = clamp_day(base_year + years, month, day)


def _occurrences(
    definition: RecurringDefinition,
    lower: date,
    upper: date,
    start: date | None = None,
) -> Iterator[date]:
    """Occurrence dates of ``definition`` within ``[lower, upper]``."""
    match definition.frequency:
        case Frequency.ONE_OFF:
            if lower <= definition.anchor_date <= upper:
                yield definition.anchor_date
        case Frequency.WEEKLY | Frequency.BIWEEKLY:
            yield from _weekly_dates(definition, lower, upper)
        case Frequency.MONTHLY:
            yield from _monthly_dates(definition, lower, upper)
        case Frequency.YEARLY:
            if definition.anchor_date is None and definition.day_of_month is None:
                raise InvalidRecurrenceError(
                    definition.id, "yearly requires anchor_date or day_of_month"
                )
            yield from _yearly_dates(definition, lower, upper, start or lower)
        case _:
            raise InvalidRecurrenceError(
                definition.id, f"unsupported frequency {definition.frequency!r}"
            )


def _to_event(definition: RecurringDefinition, when: date) -> DatedEvent:
    return DatedEvent(
        id=definition.id,
        date=when,
        amount_cents=definition.amount_cents,
        name=definition.name,
        kind=definition.kind,
        essential=definition.is_essential,
    )


def expand_between(
    definition: RecurringDefinition,
    start: date,
    end: date,
) -> tuple[DatedEvent, ...]:
    """Every occurrence dated within ``[start, end]`` inclusive, ascending."""
    if end < start:
        return ()
    return tuple(
        _to_event(definition, when)
        for when in _occurrences(definition, start, end, start)
    )


def expand(
    definition: RecurringDefinition,
    start: date,
    horizon_months: int,
) -> tuple[DatedEvent, ...]:
    """
    Expand one definition over ``[start, add_months(start, horizon_months)]``.

    Raises:
        InvalidHorizonError: If horizon_months is negative.
    """
    if horizon_months < 0:
        raise InvalidHorizonError(horizon_months)
    return expand_between(definition, start, add_months(start, horizon_months))


def expand_all(
    definitions: Iterable[RecurringDefinition],
    start: date,
    horizon_months: int,
) -> tuple[DatedEvent, ...]:
    """Expand and merge several definitions, sorted by event order."""
    if horizon_months < 0:
        raise InvalidHorizonError(horizon_months)
    end = add_months(start, horizon_months)
    events: list[DatedEvent] = []
    count = 0
    for definition in definitions:
        events.extend(expand_between(definition, start, end))
        count += 1
    events.sort(key=lambda e: e.sort_key)
    logger.debug(
        "recurrence_expanded",
        extra={
            "definitions": count,
            "events": len(events),
            "start": start.isoformat(),
            "end": end.isoformat(),
        },
    )
    return tuple(events)


def next_occurrence(
    definition: RecurringDefinition,
    reference: date,
) -> date | None:
    """
    First occurrence strictly after ``reference``.

    Used to roll a stored pay or due date forward. Returns None for a one-off
    whose date is on or before the reference.
    """
    lower = reference + timedelta(days=1)
    if definition.frequency == Frequency.ONE_OFF:
        return definition.anchor_date if definition.anchor_date >= lower else None
    upper = max(lower, definition.anchor_date or lower) + _MAX_GAP
    return next(_occurrences(definition, lower, upper, lower), None)
