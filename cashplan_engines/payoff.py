"""
Module: cashplan_engines.payoff
Responsibility:
    Deterministic day-by-day payoff simulation: income, bills,
    subscriptions, debt minimums, savings rules and surplus-driven extra
    debt payments under a selectable strategy.

Architecture position:
    Engines -- pure calculation layer, zero I/O. Depends on the amortization
    estimator (target-date rules) and on kernel money/date helpers.

Daily order (one calendar day, start to add_months(start, horizon) inclusive):
    1. New month: reset per-month bookkeeping.
    2. Day 1: accrue interest on every positive balance (before any cash
       movement that day).
    3. Incomes, then bills, then subscriptions dated today.
    4. Debt minimums due today.
    5. Day 1: FIXED_MONTHLY savings.
    6. Per income today: FIXED_PER_PAYCHECK and PERCENT_OF_INCOME savings.
    7. Day min(28, month end): savings floor top-up, then extra payments.
    8. Debt-free date, recorded once.

Invariants enforced:
    - Every mutation appends a ScheduleItem with a fresh BalanceSnapshot.
    - Voluntary payments never leave cash below the buffer; debt minimums
      only draw on cash above the buffer and shortfalls are counted misses.
    - Warnings are de-duplicated and keep first-seen order.
    - Inputs are never mutated; the run owns a SimulationState built from
      copies.

Failure modes:
    - InvalidHorizonError for a negative horizon.
    - InvalidStrategyError for an unknown strategy.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from fractions import Fraction

from cashplan_engines.amortization import required_payment_for_target
from cashplan_engines.payoff_types import (
    BalanceSnapshot,
    DebtAccount,
    EndingBalances,
    HybridWeights,
    PayoffInput,
    PayoffResult,
    PayoffSummary,
    PlanRules,
    SavingsGoal,
    SavingsRuleType,
    ScheduleItem,
    ScheduleItemType,
    Strategy,
)
from cashplan_engines.tracer import traced_engine
from cashplan_kernel.domain.dates import (
    add_months,
    calendar_month_diff,
    days_in_month,
    extra_payment_day,
    iter_days,
    month_key,
    month_label,
)
from cashplan_kernel.domain.dtos import DatedEvent, EventKind
from cashplan_kernel.domain.money import monthly_interest_cents, percent_of_bps
from cashplan_kernel.exceptions import InvalidHorizonError
from cashplan_kernel.logging_config import get_logger

logger = get_logger("engines.payoff")

ENGINE_NAME = "payoff"
ENGINE_VERSION = "1.0"

_DEFAULT_WEIGHTS = HybridWeights()


# =============================================================================
# Simulation state
# =============================================================================


@dataclass
class DebtPosition:
    """Mutable per-run copy of a DebtAccount."""

    id: str
    name: str
    balance_cents: int
    apr_bps: int
    min_payment_cents: int
    due_day_of_month: int

    @classmethod
    def from_account(cls, account: DebtAccount) -> DebtPosition:
        return cls(
            id=account.id,
            name=account.name,
            balance_cents=account.balance_cents,
            apr_bps=account.apr_bps,
            min_payment_cents=account.min_payment_cents,
            due_day_of_month=account.due_day_of_month,
        )


@dataclass
class GoalPosition:
    """Mutable per-run copy of a SavingsGoal."""

    id: str
    name: str
    target_cents: int
    current_cents: int
    rule_type: SavingsRuleType
    rule_value: int
    priority: int

    @classmethod
    def from_goal(cls, goal: SavingsGoal) -> GoalPosition:
        return cls(
            id=goal.id,
            name=goal.name,
            target_cents=goal.target_cents,
            current_cents=goal.current_cents,
            rule_type=goal.rule_type,
            rule_value=goal.rule_value,
            priority=goal.priority,
        )

    @property
    def remaining_cents(self) -> int:
        return max(0, self.target_cents - self.current_cents)


@dataclass
class SimulationState:
    """
    Everything that changes during one run.

    Step functions receive the state explicitly and mutate only it.
    ``goals`` is kept in ascending priority order.
    """

    cash_cents: int
    buffer_cents: int
    debts: list[DebtPosition]
    goals: list[GoalPosition]
    month: tuple[int, int]
    schedule: list[ScheduleItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total_interest_cents: int = 0
    missed_bills_count: int = 0
    missed_debt_mins_count: int = 0
    debt_free_date: date | None = None
    month_savings_cents: int = 0
    debt_paid_this_month: dict[str, int] = field(default_factory=dict)

    def snapshot(self) -> BalanceSnapshot:
        return BalanceSnapshot(
            cash_cents=self.cash_cents,
            debts=tuple((d.id, d.balance_cents) for d in self.debts),
            savings=tuple((g.id, g.current_cents) for g in self.goals_in_input_order()),
        )

    def goals_in_input_order(self) -> list[GoalPosition]:
        return sorted(self.goals, key=lambda g: self._goal_order[g.id])

    def record(
        self,
        day: date,
        item_type: ScheduleItemType,
        entity_id: str | None,
        amount_cents: int,
        notes: str | None = None,
    ) -> None:
        self.schedule.append(
            ScheduleItem(
                date=day,
                type=item_type,
                entity_id=entity_id,
                amount_cents=amount_cents,
                balance_snapshot=self.snapshot(),
                notes=notes,
            )
        )

    def warn(self, message: str) -> None:
        if message in self._warning_set:
            return
        self._warning_set.add(message)
        self.warnings.append(message)
        logger.warning("payoff_warning", extra={"warning": message})

    def can_afford(self, amount_cents: int) -> bool:
        return self.cash_cents - amount_cents >= self.buffer_cents

    @property
    def surplus_cents(self) -> int:
        return self.cash_cents - self.buffer_cents

    def record_debt_payment(self, debt_id: str, amount_cents: int) -> None:
        if amount_cents <= 0:
            return
        self.debt_paid_this_month[debt_id] = (
            self.debt_paid_this_month.get(debt_id, 0) + amount_cents
        )

    def __post_init__(self) -> None:
        self._warning_set: set[str] = set(self.warnings)
        self._goal_order: dict[str, int] = {g.id: i for i, g in enumerate(self.goals)}
        self.goals = sorted(self.goals, key=lambda g: g.priority)


def initial_state(payoff_input: PayoffInput) -> SimulationState:
    """Build the run's state from copies of the inputs."""
    return SimulationState(
        cash_cents=payoff_input.starting_cash_cents,
        buffer_cents=payoff_input.rules.min_buffer_cents,
        debts=[DebtPosition.from_account(d) for d in payoff_input.debts],
        goals=[GoalPosition.from_goal(g) for g in payoff_input.savings_goals],
        month=month_key(payoff_input.start_date),
    )


# =============================================================================
# Event arena
# =============================================================================


def _merge_events(payoff_input: PayoffInput) -> list[DatedEvent]:
    """All cash events sorted once by (date, kind precedence, id)."""
    events: list[DatedEvent] = []
    for source, kind in (
        (payoff_input.incomes, EventKind.INCOME),
        (payoff_input.bills, EventKind.BILL),
        (payoff_input.subscriptions, EventKind.SUBSCRIPTION),
    ):
        for event in source:
            events.append(event if event.kind == kind else replace(event, kind=kind))
    events.sort(key=lambda e: e.sort_key)
    return events


# =============================================================================
# Step functions
# =============================================================================


def roll_month(state: SimulationState, day: date) -> None:
    key = month_key(day)
    if key != state.month:
        state.month = key
        state.month_savings_cents = 0
        state.debt_paid_this_month.clear()


def accrue_interest(state: SimulationState, day: date) -> None:
    for debt in state.debts:
        if debt.balance_cents <= 0:
            continue
        interest = monthly_interest_cents(debt.balance_cents, debt.apr_bps)
        if interest <= 0:
            continue
        debt.balance_cents += interest
        state.total_interest_cents += interest
        state.record(
            day,
            ScheduleItemType.NOTE,
            debt.id,
            interest,
            f"Interest accrued for {debt.name}",
        )


def apply_income(state: SimulationState, event: DatedEvent) -> None:
    state.cash_cents += event.amount_cents
    state.record(event.date, ScheduleItemType.INCOME, event.id, event.amount_cents)


def pay_expense(state: SimulationState, event: DatedEvent, rules: PlanRules) -> None:
    """Pay a bill or subscription, or record it as skipped/missed."""
    is_bill = event.kind == EventKind.BILL
    item_type = ScheduleItemType.BILL if is_bill else ScheduleItemType.SUBSCRIPTION
    skip_nonessential = (
        is_bill and not event.essential and rules.treat_nonessential_bills_skippable
    )
    skip_subscription = not is_bill and rules.allow_cancel_subscriptions

    if not state.can_afford(event.amount_cents):
        state.missed_bills_count += 1
        if skip_nonessential:
            note = "Skipped nonessential bill"
        elif skip_subscription:
            note = "Skipped subscription"
        else:
            note = "Missed payment"
        state.record(event.date, item_type, event.id, 0, note)
        if event.essential and not skip_nonessential and not skip_subscription:
            state.warn(
                f"Missed essential {item_type.value.lower()} on {event.date.isoformat()}"
            )
        return

    state.cash_cents -= event.amount_cents
    state.record(event.date, item_type, event.id, event.amount_cents)


def pay_debt_minimum(state: SimulationState, debt: DebtPosition, day: date) -> None:
    """Pay ``min(min_payment, balance)`` out of cash above the buffer."""
    if debt.balance_cents <= 0:
        return
    required = min(debt.min_payment_cents, debt.balance_cents)
    available = max(0, state.surplus_cents)
    if available <= 0:
        state.missed_debt_mins_count += 1
        state.record(day, ScheduleItemType.DEBT_MIN, debt.id, 0, "Missed minimum payment")
        state.warn(f"Missed debt minimum for {debt.name} on {day.isoformat()}")
        return

    payment = min(required, available)
    state.cash_cents -= payment
    debt.balance_cents -= payment
    state.record_debt_payment(debt.id, payment)
    partial = payment < required
    state.record(
        day,
        ScheduleItemType.DEBT_MIN,
        debt.id,
        payment,
        "Partial minimum payment" if partial else None,
    )
    if partial:
        state.missed_debt_mins_count += 1
        state.warn(f"Partial debt minimum for {debt.name} on {day.isoformat()}")


def pay_debt_minimums(state: SimulationState, day: date) -> None:
    # Due days past the month's end fall on its last day
    last_day = days_in_month(day.year, day.month)
    for debt in state.debts:
        if min(debt.due_day_of_month, last_day) == day.day:
            pay_debt_minimum(state, debt, day)


def contribute_savings(
    state: SimulationState,
    goal: GoalPosition,
    amount_cents: int,
    day: date,
) -> None:
    if amount_cents <= 0 or goal.remaining_cents <= 0:
        return
    contribution = min(amount_cents, goal.remaining_cents)
    if not state.can_afford(contribution):
        state.record(
            day,
            ScheduleItemType.SAVINGS,
            goal.id,
            0,
            f"Unable to fund savings goal {goal.name}",
        )
        state.warn(f"Unable to fund savings goal {goal.name} on {day.isoformat()}")
        return

    state.cash_cents -= contribution
    goal.current_cents += contribution
    state.month_savings_cents += contribution
    state.record(day, ScheduleItemType.SAVINGS, goal.id, contribution)


def apply_monthly_savings(state: SimulationState, day: date) -> None:
    for goal in state.goals:
        if goal.rule_type == SavingsRuleType.FIXED_MONTHLY:
            contribute_savings(state, goal, goal.rule_value, day)


def apply_paycheck_savings(state: SimulationState, income: DatedEvent) -> None:
    for goal in state.goals:
        match goal.rule_type:
            case SavingsRuleType.FIXED_PER_PAYCHECK:
                contribute_savings(state, goal, goal.rule_value, income.date)
            case SavingsRuleType.PERCENT_OF_INCOME:
                amount = percent_of_bps(income.amount_cents, goal.rule_value)
                contribute_savings(state, goal, amount, income.date)


def apply_savings_floor(state: SimulationState, day: date, rules: PlanRules) -> None:
    """Top up this month's savings to the floor into one goal."""
    shortfall = rules.savings_floor_cents_per_month - state.month_savings_cents
    if shortfall <= 0:
        return

    target = next((g for g in state.goals if g.remaining_cents > 0), None)
    if target is None:
        state.warn(f"Savings floor missed for {month_label(day)}")
        return

    contribution = min(shortfall, target.remaining_cents)
    if not state.can_afford(contribution):
        state.record(day, ScheduleItemType.SAVINGS, target.id, 0, "Savings floor not met")
        state.warn(f"Savings floor missed for {month_label(day)}")
        return

    state.cash_cents -= contribution
    target.current_cents += contribution
    state.month_savings_cents += contribution
    state.record(
        day,
        ScheduleItemType.SAVINGS,
        target.id,
        contribution,
        "Savings floor top-up",
    )


# =============================================================================
# Debt ordering
# =============================================================================


def _avalanche_key(debt: DebtPosition) -> tuple[int, int]:
    return (-debt.apr_bps, -debt.balance_cents)


def _snowball_key(debt: DebtPosition) -> tuple[int, int]:
    return (debt.balance_cents, -debt.apr_bps)


def order_debts_for_extra(
    state: SimulationState,
    debts: list[DebtPosition],
    strategy: Strategy,
    rules: PlanRules,
) -> list[DebtPosition]:
    """Order positive-balance debts for extra payments under ``strategy``."""
    match strategy:
        case Strategy.AVALANCHE:
            return sorted(debts, key=_avalanche_key)
        case Strategy.SNOWBALL:
            return sorted(debts, key=_snowball_key)
        case Strategy.HYBRID:
            apr_weight, balance_weight = (rules.hybrid_weights or _DEFAULT_WEIGHTS).normalized()
            max_apr = max((d.apr_bps for d in debts), default=0)
            max_balance = max((d.balance_cents for d in debts), default=0)

            def score(debt: DebtPosition) -> Fraction:
                apr_score = Fraction(debt.apr_bps, max_apr) if max_apr > 0 else Fraction(0)
                balance_score = (
                    Fraction(debt.balance_cents, max_balance)
                    if max_balance > 0
                    else Fraction(0)
                )
                return apr_weight * apr_score + balance_weight * balance_score

            return sorted(debts, key=lambda d: (-score(d), *_avalanche_key(d)))
        case Strategy.CUSTOM:
            if not rules.debt_priority_order:
                state.warn(
                    "Custom strategy selected without debt_priority_order; using avalanche."
                )
                return sorted(debts, key=_avalanche_key)
            rank = {debt_id: i for i, debt_id in enumerate(rules.debt_priority_order)}
            unlisted = len(rank)
            return sorted(
                debts,
                key=lambda d: (rank.get(d.id, unlisted), *_avalanche_key(d)),
            )


def _pay_extra(
    state: SimulationState,
    debt: DebtPosition,
    amount_cents: int,
    day: date,
    notes: str | None = None,
) -> None:
    state.cash_cents -= amount_cents
    debt.balance_cents -= amount_cents
    state.record_debt_payment(debt.id, amount_cents)
    state.record(day, ScheduleItemType.DEBT_EXTRA, debt.id, amount_cents, notes)


def apply_target_payoffs(state: SimulationState, day: date, rules: PlanRules) -> None:
    """Pay toward target-date rules, nearest target first."""
    by_id = {d.id: d for d in state.debts}
    targets: list[tuple[date, DebtPosition, int]] = []
    for rule in rules.target_payoff_dates:
        debt = by_id.get(rule.debt_id)
        if debt is None or debt.balance_cents <= 0:
            continue
        month_diff = calendar_month_diff(rule.target_date, day) + 1
        if month_diff <= 0:
            state.warn(f"Target payoff date for {debt.name} has already passed.")
        required = required_payment_for_target(
            debt.balance_cents, debt.apr_bps, max(1, month_diff)
        )
        paid = state.debt_paid_this_month.get(debt.id, 0)
        required_extra = max(0, min(required, debt.balance_cents) - paid)
        targets.append((rule.target_date, debt, required_extra))

    targets.sort(key=lambda t: t[0])
    for target_date, debt, required_extra in targets:
        if required_extra <= 0:
            continue
        payment = min(max(0, state.surplus_cents), required_extra, debt.balance_cents)
        if payment > 0:
            _pay_extra(state, debt, payment, day, f"Target payoff by {target_date.isoformat()}")
        if payment < required_extra:
            state.warn(
                f"Unable to meet target payoff for {debt.name} by {target_date.isoformat()}"
            )


def apply_extra_payments(
    state: SimulationState,
    day: date,
    strategy: Strategy,
    rules: PlanRules,
) -> None:
    """Target-date rules first, then remaining surplus in strategy order."""
    if rules.target_payoff_dates:
        apply_target_payoffs(state, day, rules)

    if state.surplus_cents <= 0:
        return

    candidates = [d for d in state.debts if d.balance_cents > 0]
    for debt in order_debts_for_extra(state, candidates, strategy, rules):
        surplus = state.surplus_cents
        if surplus <= 0:
            break
        payment = min(surplus, debt.balance_cents)
        if payment > 0:
            _pay_extra(state, debt, payment, day)


def record_debt_free(state: SimulationState, day: date) -> None:
    if state.debt_free_date is None and all(d.balance_cents <= 0 for d in state.debts):
        state.debt_free_date = day


# =============================================================================
# Entry point
# =============================================================================

def _finish(state: SimulationState, payoff_input: PayoffInput) -> PayoffResult:
    return PayoffResult(
        summary=PayoffSummary(
            debt_free_date=state.debt_free_date,
            total_interest_cents=state.total_interest_cents,
            months=payoff_input.horizon_months,
            missed_bills_count=state.missed_bills_count,
            missed_debt_mins_count=state.missed_debt_mins_count,
        ),
        schedule=tuple(state.schedule),
        ending_balances=EndingBalances(
            debts=tuple((d.id, d.balance_cents) for d in state.debts),
            savings=tuple((g.id, g.current_cents) for g in state.goals_in_input_order()),
            cash_cents=state.cash_cents,
        ),
        warnings=tuple(state.warnings),
    )


@traced_engine(ENGINE_NAME, ENGINE_VERSION, fingerprint_fields=("payoff_input",))
def simulate(payoff_input: PayoffInput) -> PayoffResult:
    """
    Run one payoff simulation over the input's horizon.

    Raises:
        InvalidHorizonError: If horizon_months is negative.
        InvalidStrategyError: If the strategy is not recognised.
    """
    if payoff_input.horizon_months < 0:
        raise InvalidHorizonError(payoff_input.horizon_months)
    strategy = Strategy.parse(payoff_input.strategy)
    rules = payoff_input.rules
    start = payoff_input.start_date
    end = add_months(start, payoff_input.horizon_months)

    logger.info(
        "payoff_simulation_started",
        extra={
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "strategy": strategy.value,
            "debt_count": len(payoff_input.debts),
            "goal_count": len(payoff_input.savings_goals),
        },
    )

    events = _merge_events(payoff_input)
    cursor = 0
    while cursor < len(events) and events[cursor].date < start:
        cursor += 1

    state = initial_state(payoff_input)

    for day in iter_days(start, end):
        roll_month(state, day)

        if day.day == 1:
            accrue_interest(state, day)

        incomes: list[DatedEvent] = []
        while cursor < len(events) and events[cursor].date == day:
            event = events[cursor]
            cursor += 1
            if event.kind == EventKind.INCOME:
                apply_income(state, event)
                incomes.append(event)
            else:
                pay_expense(state, event, rules)

        pay_debt_minimums(state, day)

        if day.day == 1:
            apply_monthly_savings(state, day)

        for income in incomes:
            apply_paycheck_savings(state, income)

        if day.day == extra_payment_day(day.year, day.month):
            apply_savings_floor(state, day, rules)
            apply_extra_payments(state, day, strategy, rules)

        record_debt_free(state, day)

    result = _finish(state, payoff_input)
    logger.info(
        "payoff_simulation_completed",
        extra={
            "schedule_items": len(result.schedule),
            "total_interest_cents": result.summary.total_interest_cents,
            "debt_free_date": (
                result.summary.debt_free_date.isoformat()
                if result.summary.debt_free_date
                else None
            ),
            "missed_bills_count": result.summary.missed_bills_count,
            "missed_debt_mins_count": result.summary.missed_debt_mins_count,
            "warning_count": len(result.warnings),
        },
    )
    return result
