"""
cashplan_services.plan_builder -- Plan documents to engine inputs.

Responsibility:
    Expand a ``PlanDocument``'s recurring incomes, bills and subscriptions
    into dated events over the plan horizon, assemble the ``PayoffInput``,
    and run the payoff simulation for a preview.

Architecture position:
    Services -- thin orchestration over ``cashplan_engines``. Holds no
    state and performs no I/O; loading the document is the caller's job
    (see ``cashplan_config.load_plan``).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from cashplan_config.schema import PlanDocument
from cashplan_engines.payoff import simulate
from cashplan_engines.payoff_types import DebtAccount, PayoffInput, PayoffResult
from cashplan_engines.recurrence import expand_all, next_occurrence
from cashplan_kernel.domain.dtos import EventKind, Frequency, RecurringDefinition
from cashplan_kernel.domain.goals import PayFrequency, PaySchedule
from cashplan_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.plan_builder")

_PAY_FREQUENCIES: dict[Frequency, PayFrequency] = {
    Frequency.WEEKLY: PayFrequency.WEEKLY,
    Frequency.BIWEEKLY: PayFrequency.BIWEEKLY,
    Frequency.MONTHLY: PayFrequency.MONTHLY,
}


def debt_minimum_definitions(
    debts: Iterable[DebtAccount],
) -> tuple[RecurringDefinition, ...]:
    """One monthly DEBT_MIN definition per debt, due on its due day."""
    return tuple(
        RecurringDefinition(
            id=debt.id,
            name=f"{debt.name} minimum",
            amount_cents=debt.min_payment_cents,
            frequency=Frequency.MONTHLY,
            kind=EventKind.DEBT_MIN,
            essential=True,
            day_of_month=debt.due_day_of_month,
        )
        for debt in debts
        if debt.balance_cents > 0 and debt.min_payment_cents > 0
    )


def obligation_definitions(plan: PlanDocument) -> tuple[RecurringDefinition, ...]:
    """Bills, subscriptions and debt minimums of a plan."""
    return plan.bills + plan.subscriptions + debt_minimum_definitions(plan.debts)


def pay_schedule_from_income(
    income: RecurringDefinition,
    today: date,
) -> PaySchedule | None:
    """
    Pay schedule for an income stream as of ``today``.

    The next pay date is the first occurrence on or after today. Returns
    None for frequencies with no pay-cycle equivalent (yearly, one-off) or
    when no further occurrence exists.
    """
    frequency = _PAY_FREQUENCIES.get(income.frequency)
    if frequency is None:
        return None
    next_pay = next_occurrence(income, today - timedelta(days=1))
    if next_pay is None:
        return None
    return PaySchedule(
        frequency=frequency,
        next_pay_date=next_pay,
        amount_cents=income.amount_cents,
    )


def build_payoff_input(plan: PlanDocument) -> PayoffInput:
    """Expand a plan's recurring definitions into a ``PayoffInput``."""
    start, horizon = plan.start_date, plan.horizon_months
    payoff_input = PayoffInput(
        start_date=start,
        horizon_months=horizon,
        strategy=plan.strategy,
        rules=plan.rules,
        incomes=expand_all(plan.incomes, start, horizon),
        bills=expand_all(plan.bills, start, horizon),
        subscriptions=expand_all(plan.subscriptions, start, horizon),
        debts=plan.debts,
        savings_goals=plan.savings_goals,
        starting_cash_cents=plan.starting_cash_cents,
    )
    logger.debug(
        "payoff_input_built",
        extra={
            "plan_id": plan.plan_id,
            "incomes": len(payoff_input.incomes),
            "bills": len(payoff_input.bills),
            "subscriptions": len(payoff_input.subscriptions),
            "debts": len(plan.debts),
        },
    )
    return payoff_input


def preview_plan(plan: PlanDocument) -> PayoffResult:
    """Build the engine input for ``plan`` and run the simulation."""
    with LogContext.bind(plan_id=plan.plan_id):
        return simulate(build_payoff_input(plan))
