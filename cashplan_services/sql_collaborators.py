"""
cashplan_services.sql_collaborators -- SQLAlchemy-backed planner wiring.

Responsibility:
    Assemble a ``GoalPlanner`` over one SQLAlchemy session. The kernel
    services already satisfy the ledger, goal-store and run-store ports;
    this module adds simple balance and pay-schedule read models and the
    factory that wires them together.

Architecture position:
    Services -- adapters. Flush-only, like the kernel services they wrap:
    the caller owns the transaction (``session_scope``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from sqlalchemy.orm import Session

from cashplan_config.schema import PlannerConfig
from cashplan_kernel.domain.clock import Clock
from cashplan_kernel.domain.dtos import RecurringDefinition
from cashplan_kernel.domain.goals import PaySchedule
from cashplan_kernel.services.funding_ledger_service import FundingLedgerService
from cashplan_kernel.services.goal_store_service import GoalStoreService
from cashplan_kernel.services.planner_run_service import PlannerRunService
from cashplan_services.collaborators import (
    BalanceReadModel,
    PayScheduleLookup,
    ShockSignalProvider,
)
from cashplan_services.goal_planner import GoalPlanner
from cashplan_services.obligations import obligations_due_cents


class DefinitionBalanceReadModel:
    """
    Balance read model over known balances and recurring obligations.

    Users without an entry have a zero balance and no obligations.
    """

    def __init__(
        self,
        balances: Mapping[str, int],
        obligations: Mapping[str, Iterable[RecurringDefinition]] | None = None,
    ) -> None:
        self._balances = dict(balances)
        self._obligations = {
            user_id: tuple(defs) for user_id, defs in (obligations or {}).items()
        }

    def available_balance_cents(self, user_id: str) -> int:
        return self._balances.get(user_id, 0)

    def obligations_due_cents(self, user_id: str, start: date, end: date) -> int:
        return obligations_due_cents(self._obligations.get(user_id, ()), start, end)


class StaticPayScheduleLookup:
    def __init__(self, schedules: Mapping[str, PaySchedule]) -> None:
        self._schedules = dict(schedules)

    def pay_schedule(self, user_id: str) -> PaySchedule | None:
        return self._schedules.get(user_id)


def build_sql_goal_planner(
    session: Session,
    *,
    balances: BalanceReadModel,
    pay_schedules: PayScheduleLookup,
    shock: ShockSignalProvider | None = None,
    config: PlannerConfig | None = None,
    clock: Clock | None = None,
) -> GoalPlanner:
    """Wire a GoalPlanner whose ledger, goals and run history live in ``session``."""
    return GoalPlanner(
        balances=balances,
        pay_schedules=pay_schedules,
        ledger=FundingLedgerService(session),
        goals=GoalStoreService(session, clock=clock),
        runs=PlannerRunService(session),
        shock=shock,
        config=config,
        clock=clock,
    )
