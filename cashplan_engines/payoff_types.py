"""
Module: cashplan_engines.payoff_types
Responsibility:
    Input and output types for the payoff simulator: strategy, plan rules,
    debts, savings goals, schedule items and balance snapshots.

Architecture position:
    Engines -- pure data, zero I/O. ``cashplan_config`` builds PlanRules from
    YAML; the simulator consumes them.

Invariants enforced:
    - All currency fields are integer cents, validated at construction.
    - Input types are frozen. The simulator works on its own mutable
      positions, never on these.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from fractions import Fraction

from cashplan_kernel.domain.dtos import DatedEvent
from cashplan_kernel.domain.money import require_cents
from cashplan_kernel.exceptions import InvalidAmountError, InvalidStrategyError

DEFAULT_APR_WEIGHT = Decimal("0.6")
DEFAULT_BALANCE_WEIGHT = Decimal("0.4")


class Strategy(str, Enum):
    """Ordering used for extra debt payments."""

    AVALANCHE = "AVALANCHE"
    SNOWBALL = "SNOWBALL"
    HYBRID = "HYBRID"
    CUSTOM = "CUSTOM"

    @classmethod
    def parse(cls, value: object) -> Strategy:
        """
        Coerce a name (any case) or member to a Strategy.

        Raises:
            InvalidStrategyError: If the value names no strategy.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip():
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise InvalidStrategyError(value, tuple(m.value for m in cls))


class SavingsRuleType(str, Enum):
    FIXED_MONTHLY = "FIXED_MONTHLY"
    FIXED_PER_PAYCHECK = "FIXED_PER_PAYCHECK"
    PERCENT_OF_INCOME = "PERCENT_OF_INCOME"


class ScheduleItemType(str, Enum):
    INCOME = "INCOME"
    BILL = "BILL"
    SUBSCRIPTION = "SUBSCRIPTION"
    DEBT_MIN = "DEBT_MIN"
    DEBT_EXTRA = "DEBT_EXTRA"
    SAVINGS = "SAVINGS"
    NOTE = "NOTE"


@dataclass(frozen=True)
class HybridWeights:
    apr_weight: Decimal = DEFAULT_APR_WEIGHT
    balance_weight: Decimal = DEFAULT_BALANCE_WEIGHT

    def normalized(self) -> tuple[Fraction, Fraction]:
        """Weights scaled to sum to 1; defaults if the sum is not positive."""
        apr = Fraction(self.apr_weight)
        balance = Fraction(self.balance_weight)
        total = apr + balance
        if total <= 0:
            return Fraction(DEFAULT_APR_WEIGHT), Fraction(DEFAULT_BALANCE_WEIGHT)
        return apr / total, balance / total


@dataclass(frozen=True)
class TargetPayoffRule:
    debt_id: str
    target_date: date


@dataclass(frozen=True)
class PlanRules:
    """Plan-level rules consumed by the simulator."""

    savings_floor_cents_per_month: int = 0
    min_buffer_cents: int = 0
    allow_cancel_subscriptions: bool = False
    treat_nonessential_bills_skippable: bool = False
    debt_priority_order: tuple[str, ...] = ()
    hybrid_weights: HybridWeights | None = None
    target_payoff_dates: tuple[TargetPayoffRule, ...] = ()

    def __post_init__(self) -> None:
        require_cents("savings_floor_cents_per_month", self.savings_floor_cents_per_month)
        require_cents("min_buffer_cents", self.min_buffer_cents)


@dataclass(frozen=True)
class DebtAccount:
    id: str
    name: str
    balance_cents: int
    apr_bps: int
    min_payment_cents: int
    due_day_of_month: int

    def __post_init__(self) -> None:
        require_cents(f"{self.id}.balance_cents", self.balance_cents)
        require_cents(f"{self.id}.min_payment_cents", self.min_payment_cents)
        require_cents(f"{self.id}.apr_bps", self.apr_bps)
        if not 1 <= self.due_day_of_month <= 31:
            raise InvalidAmountError(
                f"{self.id}.due_day_of_month",
                self.due_day_of_month,
                "must be between 1 and 31",
            )


@dataclass(frozen=True)
class SavingsGoal:
    """
    Engine-local savings goal.

    ``rule_value`` is cents for the fixed rules and basis points for
    PERCENT_OF_INCOME. Lower ``priority`` is funded first.
    """

    id: str
    name: str
    target_cents: int
    current_cents: int
    rule_type: SavingsRuleType
    rule_value: int
    priority: int = 0

    def __post_init__(self) -> None:
        require_cents(f"{self.id}.target_cents", self.target_cents)
        require_cents(f"{self.id}.current_cents", self.current_cents)
        require_cents(f"{self.id}.rule_value", self.rule_value)


@dataclass(frozen=True)
class PayoffInput:
    start_date: date
    horizon_months: int
    strategy: Strategy
    rules: PlanRules = field(default_factory=PlanRules)
    incomes: tuple[DatedEvent, ...] = ()
    bills: tuple[DatedEvent, ...] = ()
    subscriptions: tuple[DatedEvent, ...] = ()
    debts: tuple[DebtAccount, ...] = ()
    savings_goals: tuple[SavingsGoal, ...] = ()
    starting_cash_cents: int = 0


@dataclass(frozen=True)
class BalanceSnapshot:
    """Cash, debt balances and goal balances at one instant."""

    cash_cents: int
    debts: tuple[tuple[str, int], ...]
    savings: tuple[tuple[str, int], ...]

    def debt_balance(self, debt_id: str) -> int | None:
        return dict(self.debts).get(debt_id)

    def savings_balance(self, goal_id: str) -> int | None:
        return dict(self.savings).get(goal_id)


@dataclass(frozen=True)
class ScheduleItem:
    date: date
    type: ScheduleItemType
    entity_id: str | None
    amount_cents: int
    balance_snapshot: BalanceSnapshot
    notes: str | None = None


@dataclass(frozen=True)
class PayoffSummary:
    debt_free_date: date | None
    total_interest_cents: int
    months: int
    missed_bills_count: int
    missed_debt_mins_count: int


@dataclass(frozen=True)
class EndingBalances:
    debts: tuple[tuple[str, int], ...]
    savings: tuple[tuple[str, int], ...]
    cash_cents: int


@dataclass(frozen=True)
class PayoffResult:
    summary: PayoffSummary
    schedule: tuple[ScheduleItem, ...]
    ending_balances: EndingBalances
    warnings: tuple[str, ...]

    def items_of(self, item_type: ScheduleItemType) -> tuple[ScheduleItem, ...]:
        return tuple(item for item in self.schedule if item.type == item_type)
