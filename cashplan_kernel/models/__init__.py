"""
SQLAlchemy ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from cashplan_kernel.models.funding_ledger import FundingLedgerEntryModel
from cashplan_kernel.models.planner_run import PlannerRunModel
from cashplan_kernel.models.purchase_goal import PurchaseGoalModel

__all__ = [
    "FundingLedgerEntryModel",
    "PlannerRunModel",
    "PurchaseGoalModel",
]
