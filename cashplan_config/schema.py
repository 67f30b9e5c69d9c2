"""
Planner configuration and plan document schema.

Defines the human-authored configuration artifacts. YAML files are parsed
into these types by the loader; the planner and the plan builder consume
them and never read files or the environment themselves.

Key distinction:
  PlannerConfig = knobs for the goal allocation planner (one per deployment)
  PlanDocument  = one household plan fed to the payoff simulator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from cashplan_engines.payoff_types import (
    DebtAccount,
    HybridWeights,
    PlanRules,
    SavingsGoal,
    Strategy,
    TargetPayoffRule,
)
from cashplan_kernel.domain.dtos import EventKind, RecurringDefinition
from cashplan_kernel.domain.goals import PlannerCadence, ShockMode
from cashplan_kernel.exceptions import InvalidPlannerConfigError

__all__ = [
    "DEFAULT_BUFFER_CENTS",
    "DEFAULT_COOLDOWN_HOURS",
    "DEFAULT_LOOKAHEAD_DAYS",
    "DEFAULT_MAX_CONTRIBUTION_CENTS",
    "HybridWeights",
    "PlanDocument",
    "PlanRules",
    "PlannerConfig",
    "TargetPayoffRule",
]

DEFAULT_BUFFER_CENTS = 20_000
DEFAULT_LOOKAHEAD_DAYS = 45
DEFAULT_MAX_CONTRIBUTION_CENTS = 50_000
DEFAULT_COOLDOWN_HOURS = 12


# ---------------------------------------------------------------------------
# Goal allocation planner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlannerConfig:
    """
    Goal allocation planner settings.

    ``buffer_cents`` is held back from every surplus computation.
    ``max_contribution_cents`` caps the total allocated by one run.
    ``cooldown_hours`` of 0 disables the cooldown gate.
    """

    buffer_cents: int = DEFAULT_BUFFER_CENTS
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS
    max_contribution_cents: int = DEFAULT_MAX_CONTRIBUTION_CENTS
    cooldown_hours: int = DEFAULT_COOLDOWN_HOURS
    enabled: bool = True
    shock_mode: ShockMode = ShockMode.SUGGEST
    default_cadence: PlannerCadence = PlannerCadence.BOTH

    def __post_init__(self) -> None:
        for name in ("buffer_cents", "max_contribution_cents", "cooldown_hours"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidPlannerConfigError(name, value, "must be an integer >= 0")
        if (
            isinstance(self.lookahead_days, bool)
            or not isinstance(self.lookahead_days, int)
            or self.lookahead_days < 1
        ):
            raise InvalidPlannerConfigError(
                "lookahead_days", self.lookahead_days, "must be an integer >= 1"
            )
        if not isinstance(self.shock_mode, ShockMode):
            raise InvalidPlannerConfigError(
                "shock_mode", self.shock_mode, "must be a ShockMode"
            )


# ---------------------------------------------------------------------------
# Payoff plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlanDocument:
    """
    A whole household plan: horizon, strategy, rules and the recurring
    cash flows and accounts the simulator runs over.
    """

    plan_id: str
    start_date: date
    horizon_months: int
    strategy: Strategy
    rules: PlanRules = field(default_factory=PlanRules)
    incomes: tuple[RecurringDefinition, ...] = ()
    bills: tuple[RecurringDefinition, ...] = ()
    subscriptions: tuple[RecurringDefinition, ...] = ()
    debts: tuple[DebtAccount, ...] = ()
    savings_goals: tuple[SavingsGoal, ...] = ()
    starting_cash_cents: int = 0

    def definitions_of(self, kind: EventKind) -> tuple[RecurringDefinition, ...]:
        match kind:
            case EventKind.INCOME:
                return self.incomes
            case EventKind.BILL:
                return self.bills
            case EventKind.SUBSCRIPTION:
                return self.subscriptions
            case _:
                return ()
