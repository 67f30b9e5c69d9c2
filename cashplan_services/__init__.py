"""
cashplan_services -- orchestration over engines and injected collaborators.

    GoalPlanner             Periodic surplus allocation to purchase goals
    build_sql_goal_planner  GoalPlanner wired to a SQLAlchemy session
    build_payoff_input      PlanDocument -> PayoffInput
    preview_plan            PlanDocument -> PayoffResult
    obligations_due_cents   Bills/subscriptions/debt minimums due in a window
"""

from cashplan_services.collaborators import (
    BalanceReadModel,
    FundingLedger,
    GoalStore,
    PayScheduleLookup,
    PlannerRunStore,
    ShockSignalProvider,
    StaticShockSignal,
)
from cashplan_services.goal_planner import GoalPlanner
from cashplan_services.obligations import obligations_due_cents
from cashplan_services.plan_builder import (
    build_payoff_input,
    debt_minimum_definitions,
    obligation_definitions,
    pay_schedule_from_income,
    preview_plan,
)
from cashplan_services.sql_collaborators import (
    DefinitionBalanceReadModel,
    StaticPayScheduleLookup,
    build_sql_goal_planner,
)

__all__ = [
    "BalanceReadModel",
    "DefinitionBalanceReadModel",
    "FundingLedger",
    "GoalPlanner",
    "GoalStore",
    "PayScheduleLookup",
    "PlannerRunStore",
    "ShockSignalProvider",
    "StaticPayScheduleLookup",
    "StaticShockSignal",
    "build_payoff_input",
    "build_sql_goal_planner",
    "debt_minimum_definitions",
    "obligation_definitions",
    "obligations_due_cents",
    "pay_schedule_from_income",
    "preview_plan",
]
