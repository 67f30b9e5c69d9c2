"""
Module: cashplan_engines.goal_allocation
Responsibility:
    Pure pieces of the goal allocation planner: planning periods, expected
    income per period, required contribution per period, allocation order,
    and the greedy per-period allocation itself.

Architecture position:
    Engines -- pure calculation layer, zero I/O. ``today`` is always passed
    in; the planner service owns the clock and the collaborators.

Invariants enforced:
    - sum(allocation amounts) <= surplus_cents for one call.
    - sum(allocation amounts) <= max_contribution_cents for one call.
    - No goal receives more than its remaining (target - reserved).
    - Allocation order: priority asc, target date asc (undated last),
      required per period desc. Stable for full ties.

Usage:
    periods = build_weekly_periods(today, 45)
    allocations = allocate_contributions(
        goals=goals,
        reserved_by_goal={"g1": 1500},
        cadence=GoalCadence.WEEKLY,
        period=periods[0],
        surplus_cents=12_000,
        max_contribution_cents=50_000,
        today=today,
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, timedelta
from fractions import Fraction

from cashplan_engines.tracer import traced_engine
from cashplan_kernel.domain.goals import (
    AllocationResult,
    GoalCadence,
    PayFrequency,
    PaySchedule,
    PlanningPeriod,
    PurchaseGoal,
)
from cashplan_kernel.domain.money import round_half_up
from cashplan_kernel.exceptions import InvalidHorizonError
from cashplan_kernel.logging_config import get_logger

logger = get_logger("engines.goal_allocation")

DEFAULT_WEEKLY_PERIODS = 8
DEFAULT_PAYCHECK_PERIODS = 4
WEEK_DAYS = 7
# Paycheck period length when no pay schedule is known
DEFAULT_PAYCHECK_DAYS = 30

# Share of one paycheck expected inside one week
_WEEKLY_INCOME_SHARE: dict[PayFrequency, Fraction] = {
    PayFrequency.WEEKLY: Fraction(1),
    PayFrequency.BIWEEKLY: Fraction(1, 2),
    PayFrequency.SEMIMONTHLY: Fraction(1, 2),
    PayFrequency.MONTHLY: Fraction(1, 4),
}


# =============================================================================
# Periods
# =============================================================================


def _check_horizon(horizon_days: int) -> None:
    if horizon_days < 0:
        raise InvalidHorizonError(horizon_days, unit="days")


def build_weekly_periods(start: date, horizon_days: int) -> tuple[PlanningPeriod, ...]:
    """Consecutive 7-day windows starting at ``start`` while before the horizon."""
    _check_horizon(horizon_days)
    horizon_end = start + timedelta(days=horizon_days)
    periods: list[PlanningPeriod] = []
    cursor = start
    while cursor < horizon_end:
        end = cursor + timedelta(days=WEEK_DAYS)
        periods.append(
            PlanningPeriod(start=cursor, end=end, label=f"Week of {cursor.isoformat()}")
        )
        cursor = end
    return tuple(periods)


def build_paycheck_periods(
    schedule: PaySchedule,
    start: date,
    horizon_days: int,
) -> tuple[PlanningPeriod, ...]:
    """
    Windows ending on successive pay dates.

    The first window runs from ``start`` to the next pay date. A stale pay
    date, or one falling on ``start`` itself, is rolled forward by the pay
    frequency until it is after ``start``.
    """
    _check_horizon(horizon_days)
    horizon_end = start + timedelta(days=horizon_days)
    step = timedelta(days=schedule.frequency.period_days)

    next_pay = schedule.next_pay_date
    while next_pay <= start:
        next_pay += step

    periods: list[PlanningPeriod] = []
    current_start = start
    while current_start < horizon_end:
        periods.append(
            PlanningPeriod(
                start=current_start,
                end=next_pay,
                label=f"Paycheck period ending {next_pay.isoformat()}",
            )
        )
        current_start = next_pay
        next_pay = next_pay + step
    return tuple(periods)


# =============================================================================
# Per-goal requirements
# =============================================================================


def calculate_required_per_period(remaining_cents: int, periods_left: int) -> int:
    """``ceil(remaining / max(1, periods_left))``."""
    periods = max(1, periods_left)
    return -(-remaining_cents // periods)


def count_periods_to_target(
    cadence: GoalCadence,
    target_date: date | None,
    today: date,
    schedule: PaySchedule | None = None,
) -> int:
    """
    Periods between today and the target date (at least one day's worth).

    Undated goals spread over 8 weekly or 4 paycheck periods.
    """
    if target_date is None:
        return DEFAULT_WEEKLY_PERIODS if cadence == GoalCadence.WEEKLY else DEFAULT_PAYCHECK_PERIODS

    diff_days = max(1, (target_date - today).days)
    if cadence == GoalCadence.WEEKLY:
        period_days = WEEK_DAYS
    elif schedule is not None:
        period_days = schedule.frequency.period_days
    else:
        period_days = DEFAULT_PAYCHECK_DAYS
    return -(-diff_days // period_days)


def estimate_income_for_period(
    schedule: PaySchedule | None,
    cadence: GoalCadence,
) -> int:
    """
    Income expected inside one planning period.

    A paycheck period holds one full paycheck; a week holds the paycheck
    scaled by how many paychecks fall in a week, rounded half-up.
    """
    if schedule is None or not schedule.amount_cents:
        return 0
    if cadence == GoalCadence.PAYCHECK:
        return schedule.amount_cents
    return round_half_up(schedule.amount_cents * _WEEKLY_INCOME_SHARE[schedule.frequency])


def compute_surplus(
    available_balance_cents: int,
    expected_income_cents: int,
    obligations_cents: int,
    buffer_cents: int,
) -> int:
    """Available + expected income - obligations - buffer, floored at zero."""
    return max(
        0,
        available_balance_cents + expected_income_cents - obligations_cents - buffer_cents,
    )


# =============================================================================
# Allocation
# =============================================================================


def sort_goals_for_allocation(
    goals: Sequence[PurchaseGoal],
    required_by_goal: Mapping[str, int],
) -> list[PurchaseGoal]:
    """Priority asc, target date asc (undated last), required desc."""

    def key(goal: PurchaseGoal) -> tuple[int, int, date, int]:
        undated = 1 if goal.target_date is None else 0
        return (
            goal.priority,
            undated,
            goal.target_date or date.max,
            -required_by_goal.get(goal.id, 0),
        )

    return sorted(goals, key=key)


@traced_engine(
    "goal_allocation",
    "1.0",
    fingerprint_fields=("goals", "reserved_by_goal", "period", "surplus_cents"),
)
def allocate_contributions(
    goals: Sequence[PurchaseGoal],
    reserved_by_goal: Mapping[str, int],
    cadence: GoalCadence,
    period: PlanningPeriod,
    surplus_cents: int,
    max_contribution_cents: int,
    today: date,
    schedule: PaySchedule | None = None,
) -> tuple[AllocationResult, ...]:
    """
    Greedily fund goals for one period.

    Each goal wants ``min(max(required, min_contribution),
    max_contribution or remaining, remaining)``; what it gets is further
    capped by the surplus still unallocated and by the run-wide contribution
    ceiling. Goals with nothing remaining are skipped.
    """
    required_by_goal: dict[str, int] = {}
    remaining_by_goal: dict[str, int] = {}
    for goal in goals:
        reserved = reserved_by_goal.get(goal.id, 0)
        remaining = max(0, goal.target_amount_cents - reserved)
        remaining_by_goal[goal.id] = remaining
        periods_left = count_periods_to_target(cadence, goal.target_date, today, schedule)
        required_by_goal[goal.id] = calculate_required_per_period(remaining, periods_left)

    allocations: list[AllocationResult] = []
    remaining_surplus = surplus_cents
    total_contributed = 0

    for goal in sort_goals_for_allocation(goals, required_by_goal):
        if remaining_surplus <= 0:
            break
        remaining = remaining_by_goal[goal.id]
        if remaining <= 0:
            continue

        required = required_by_goal[goal.id]
        minimum = goal.min_contribution_cents or 0
        maximum = (
            goal.max_contribution_cents
            if goal.max_contribution_cents is not None
            else remaining
        )
        want = min(max(required, minimum), maximum, remaining)
        contribution = min(want, remaining_surplus)

        cap_left = max_contribution_cents - total_contributed
        if cap_left <= 0:
            break
        contribution = min(contribution, cap_left)
        if contribution <= 0:
            continue

        remaining_surplus -= contribution
        total_contributed += contribution
        allocations.append(
            AllocationResult(
                goal_id=goal.id,
                amount_cents=contribution,
                period_start=period.start,
                period_end=period.end,
                required_per_period_cents=required,
                remaining_cents=remaining,
                reserved_cents_before=reserved_by_goal.get(goal.id, 0),
            )
        )

    logger.info(
        "goal_allocation_completed",
        extra={
            "cadence": cadence.value,
            "period_start": period.start.isoformat(),
            "goal_count": len(goals),
            "funded_count": len(allocations),
            "surplus_cents": surplus_cents,
            "allocated_cents": total_contributed,
        },
    )
    return tuple(allocations)
