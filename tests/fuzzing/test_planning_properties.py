"""
Property-based tests for the payoff simulator and the goal allocator.

Properties checked:
- Extra debt payments and savings contributions never take cash below the
  configured buffer.
- Debt balances never go negative.
- Simulation is deterministic for identical input.
- With a single debt every strategy produces the same schedule.
- Avalanche never pays more interest than snowball, up to cent rounding.
- One allocation call never exceeds the surplus, the run ceiling or any
  goal's remaining amount.
"""

from dataclasses import replace
from datetime import date, timedelta

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from cashplan_engines.goal_allocation import allocate_contributions
from cashplan_engines.payoff import simulate
from cashplan_engines.payoff_types import (
    DebtAccount,
    PayoffInput,
    PlanRules,
    SavingsGoal,
    SavingsRuleType,
    ScheduleItemType,
    Strategy,
)
from cashplan_engines.recurrence import expand_all
from cashplan_kernel.domain.dtos import EventKind, Frequency, RecurringDefinition
from cashplan_kernel.domain.goals import GoalCadence, PlanningPeriod, PurchaseGoal

START = date(2025, 1, 1)
PROPERTY_SETTINGS = settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


@composite
def debt_accounts(draw, max_debts: int = 4):
    count = draw(st.integers(min_value=1, max_value=max_debts))
    debts = []
    for i in range(count):
        balance = draw(st.integers(min_value=0, max_value=2_000_000))
        debts.append(
            DebtAccount(
                id=f"d{i}",
                name=f"Debt {i}",
                balance_cents=balance,
                apr_bps=draw(st.integers(min_value=0, max_value=3_500)),
                min_payment_cents=draw(st.integers(min_value=0, max_value=50_000)),
                due_day_of_month=draw(st.integers(min_value=1, max_value=31)),
            )
        )
    return tuple(debts)


@composite
def payoff_inputs(draw, strategy=None):
    income = RecurringDefinition(
        id="salary",
        name="Salary",
        amount_cents=draw(st.integers(min_value=0, max_value=600_000)),
        frequency=draw(st.sampled_from([Frequency.WEEKLY, Frequency.BIWEEKLY, Frequency.MONTHLY])),
        kind=EventKind.INCOME,
        anchor_date=START + timedelta(days=draw(st.integers(min_value=0, max_value=13))),
    )
    rent = RecurringDefinition(
        id="rent",
        name="Rent",
        amount_cents=draw(st.integers(min_value=0, max_value=300_000)),
        frequency=Frequency.MONTHLY,
        kind=EventKind.BILL,
        day_of_month=draw(st.integers(min_value=1, max_value=31)),
    )
    goals = (
        SavingsGoal(
            id="rainy-day",
            name="Rainy day",
            target_cents=draw(st.integers(min_value=0, max_value=500_000)),
            current_cents=0,
            rule_type=draw(st.sampled_from(list(SavingsRuleType))),
            rule_value=draw(st.integers(min_value=0, max_value=20_000)),
        ),
    )
    horizon = draw(st.integers(min_value=0, max_value=6))
    return PayoffInput(
        start_date=START,
        horizon_months=horizon,
        strategy=strategy or draw(st.sampled_from(list(Strategy))),
        rules=PlanRules(
            savings_floor_cents_per_month=draw(st.integers(min_value=0, max_value=50_000)),
            min_buffer_cents=draw(st.integers(min_value=0, max_value=100_000)),
        ),
        incomes=expand_all([income], START, horizon),
        bills=expand_all([rent], START, horizon),
        debts=draw(debt_accounts()),
        savings_goals=goals,
        starting_cash_cents=draw(st.integers(min_value=0, max_value=1_000_000)),
    )


class TestPayoffProperties:
    @given(payoff_input=payoff_inputs())
    @PROPERTY_SETTINGS
    def test_discretionary_spending_respects_buffer(self, payoff_input):
        result = simulate(payoff_input)
        buffer = payoff_input.rules.min_buffer_cents
        for item in result.schedule:
            if item.type in (ScheduleItemType.DEBT_EXTRA, ScheduleItemType.SAVINGS):
                if item.amount_cents > 0:
                    assert item.balance_snapshot.cash_cents >= buffer, item

    @given(payoff_input=payoff_inputs())
    @PROPERTY_SETTINGS
    def test_balances_never_negative(self, payoff_input):
        result = simulate(payoff_input)
        for item in result.schedule:
            assert all(balance >= 0 for _, balance in item.balance_snapshot.debts)
        assert all(balance >= 0 for _, balance in result.ending_balances.debts)

    @given(payoff_input=payoff_inputs())
    @PROPERTY_SETTINGS
    def test_deterministic(self, payoff_input):
        assert simulate(payoff_input) == simulate(payoff_input)

    @given(payoff_input=payoff_inputs(strategy=Strategy.AVALANCHE))
    @PROPERTY_SETTINGS
    def test_single_debt_strategy_irrelevant(self, payoff_input):
        single = replace(payoff_input, debts=payoff_input.debts[:1])
        avalanche = simulate(single)
        for strategy in (Strategy.SNOWBALL, Strategy.HYBRID):
            other = simulate(replace(single, strategy=strategy))
            assert other.schedule == avalanche.schedule
            assert other.summary == avalanche.summary

    @given(payoff_input=payoff_inputs(strategy=Strategy.AVALANCHE))
    @PROPERTY_SETTINGS
    def test_avalanche_interest_not_above_snowball(self, payoff_input):
        avalanche = simulate(payoff_input)
        snowball = simulate(replace(payoff_input, strategy=Strategy.SNOWBALL))
        # Per-debt monthly interest is rounded to the cent
        slack = (payoff_input.horizon_months + 1) * len(payoff_input.debts)
        assert (
            avalanche.summary.total_interest_cents
            <= snowball.summary.total_interest_cents + slack
        )


@composite
def purchase_goals(draw):
    count = draw(st.integers(min_value=0, max_value=6))
    goals = []
    for i in range(count):
        minimum = draw(st.none() | st.integers(min_value=0, max_value=30_000))
        maximum = draw(st.none() | st.integers(min_value=0, max_value=30_000))
        goals.append(
            PurchaseGoal(
                id=f"g{i}",
                user_id="u1",
                name=f"Goal {i}",
                cadence=GoalCadence.WEEKLY,
                target_amount_cents=draw(st.integers(min_value=0, max_value=200_000)),
                priority=draw(st.integers(min_value=1, max_value=5)),
                target_date=draw(
                    st.none() | st.dates(min_value=date(2024, 6, 1), max_value=date(2026, 1, 1))
                ),
                min_contribution_cents=minimum,
                max_contribution_cents=maximum,
            )
        )
    return goals


class TestAllocationProperties:
    @given(
        goals=purchase_goals(),
        reserved=st.dictionaries(
            st.sampled_from([f"g{i}" for i in range(6)]),
            st.integers(min_value=0, max_value=250_000),
        ),
        surplus=st.integers(min_value=0, max_value=200_000),
        ceiling=st.integers(min_value=0, max_value=100_000),
    )
    @PROPERTY_SETTINGS
    def test_allocation_bounded(self, goals, reserved, surplus, ceiling):
        period = PlanningPeriod(START, START + timedelta(days=7), "Week of 2025-01-01")
        allocations = allocate_contributions(
            goals=goals,
            reserved_by_goal=reserved,
            cadence=GoalCadence.WEEKLY,
            period=period,
            surplus_cents=surplus,
            max_contribution_cents=ceiling,
            today=START,
        )
        total = sum(a.amount_cents for a in allocations)
        assert total <= surplus
        assert total <= ceiling

        targets = {g.id: g.target_amount_cents for g in goals}
        seen = set()
        for allocation in allocations:
            assert allocation.amount_cents > 0
            assert allocation.goal_id not in seen
            seen.add(allocation.goal_id)
            before = reserved.get(allocation.goal_id, 0)
            assert before + allocation.amount_cents <= targets[allocation.goal_id]
