"""Kernel write services (flush-only; the caller owns commit)."""

from cashplan_kernel.services.base import BaseService
from cashplan_kernel.services.funding_ledger_service import FundingLedgerService
from cashplan_kernel.services.goal_store_service import GoalStoreService
from cashplan_kernel.services.planner_run_service import PlannerRunService

__all__ = [
    "BaseService",
    "FundingLedgerService",
    "GoalStoreService",
    "PlannerRunService",
]
