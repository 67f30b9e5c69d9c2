"""
Module: cashplan_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: recurrence
    expansion, amortization estimates, payoff simulation and goal
    allocation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import cashplan_kernel (domain, exceptions, logging) and
    sibling engine modules. MUST NOT import cashplan_services or
    cashplan_config.

Invariants enforced:
    - Purity: engines never read the clock; dates are passed in.
    - Integer cents throughout, rounded half-up at every boundary.
    - Determinism: identical inputs produce identical outputs.

Audit relevance:
    ``simulate`` and ``allocate_contributions`` are wrapped by
    ``@traced_engine`` and emit CASHPLAN_ENGINE_TRACE records.
"""

from cashplan_engines.amortization import (
    estimate_payoff_date,
    months_to_payoff,
    required_payment_for_target,
)
from cashplan_engines.goal_allocation import (
    allocate_contributions,
    build_paycheck_periods,
    build_weekly_periods,
    calculate_required_per_period,
    compute_surplus,
    count_periods_to_target,
    estimate_income_for_period,
    sort_goals_for_allocation,
)
from cashplan_engines.payoff import simulate
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
    TargetPayoffRule,
)
from cashplan_engines.recurrence import (
    expand,
    expand_all,
    expand_between,
    next_occurrence,
)
from cashplan_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Amortization
    "estimate_payoff_date",
    "months_to_payoff",
    "required_payment_for_target",
    # Goal allocation
    "allocate_contributions",
    "build_paycheck_periods",
    "build_weekly_periods",
    "calculate_required_per_period",
    "compute_surplus",
    "count_periods_to_target",
    "estimate_income_for_period",
    "sort_goals_for_allocation",
    # Payoff
    "simulate",
    "BalanceSnapshot",
    "DebtAccount",
    "EndingBalances",
    "HybridWeights",
    "PayoffInput",
    "PayoffResult",
    "PayoffSummary",
    "PlanRules",
    "SavingsGoal",
    "SavingsRuleType",
    "ScheduleItem",
    "ScheduleItemType",
    "Strategy",
    "TargetPayoffRule",
    # Recurrence
    "expand",
    "expand_all",
    "expand_between",
    "next_occurrence",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]
