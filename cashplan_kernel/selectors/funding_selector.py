"""
Module: cashplan_kernel.selectors.funding_selector
Responsibility: Read queries over purchase goals and the funding ledger:
    reserved cents per goal, goal progress, run-id existence, and goal DTO
    lookup.
Architecture position: Kernel > Selectors.

Reserved amounts are always derived by summing ledger rows; there is no
stored running balance.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import func, select

from cashplan_kernel.domain.goals import (
    GoalCadence,
    GoalProgress,
    GoalStatus,
    PurchaseGoal,
)
from cashplan_kernel.models.funding_ledger import FundingLedgerEntryModel
from cashplan_kernel.models.purchase_goal import PurchaseGoalModel
from cashplan_kernel.selectors.base import BaseSelector


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def goal_to_dto(model: PurchaseGoalModel) -> PurchaseGoal:
    """Convert an ORM goal to the domain DTO."""
    return PurchaseGoal(
        id=str(model.id),
        user_id=model.user_id,
        name=model.name,
        cadence=GoalCadence(model.cadence),
        target_amount_cents=model.target_amount_cents,
        priority=model.priority,
        target_date=model.target_date,
        min_contribution_cents=model.min_contribution_cents,
        max_contribution_cents=model.max_contribution_cents,
        flexible_date=model.flexible_date,
        status=GoalStatus(model.status),
    )


class FundingSelector(BaseSelector[FundingLedgerEntryModel]):
    """Read access to goals and their funding."""

    def has_run(self, user_id: str, run_id: str) -> bool:
        """True if any ledger entry for this user carries ``run_id``."""
        stmt = (
            select(FundingLedgerEntryModel.id)
            .where(
                FundingLedgerEntryModel.user_id == user_id,
                FundingLedgerEntryModel.run_id == run_id,
            )
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def reserved_by_goal(
        self,
        user_id: str,
        goal_ids: Iterable[str],
    ) -> dict[str, int]:
        """
        Sum of ledger amounts per goal. Goals with no entries are absent.
        """
        ids = [uid for uid in (_parse_uuid(g) for g in goal_ids) if uid is not None]
        if not ids:
            return {}
        stmt = (
            select(
                FundingLedgerEntryModel.goal_id,
                func.sum(FundingLedgerEntryModel.amount_cents),
            )
            .where(
                FundingLedgerEntryModel.user_id == user_id,
                FundingLedgerEntryModel.goal_id.in_(ids),
            )
            .group_by(FundingLedgerEntryModel.goal_id)
        )
        return {
            str(goal_id): int(total or 0)
            for goal_id, total in self.session.execute(stmt).all()
        }

    def reserved_total(self, user_id: str) -> int:
        """All cents reserved by a user across every goal."""
        stmt = select(
            func.coalesce(func.sum(FundingLedgerEntryModel.amount_cents), 0)
        ).where(FundingLedgerEntryModel.user_id == user_id)
        return int(self.session.execute(stmt).scalar_one())

    def goal_progress(self, goal_id: str) -> GoalProgress | None:
        """Reserved and remaining cents for one goal, or None if unknown."""
        goal = self.get_goal_model(goal_id)
        if goal is None:
            return None
        stmt = select(
            func.coalesce(func.sum(FundingLedgerEntryModel.amount_cents), 0)
        ).where(FundingLedgerEntryModel.goal_id == goal.id)
        reserved = int(self.session.execute(stmt).scalar_one())
        return GoalProgress(
            goal_id=str(goal.id),
            reserved_cents=reserved,
            remaining_cents=max(0, goal.target_amount_cents - reserved),
        )

    def get_goal_model(self, goal_id: str) -> PurchaseGoalModel | None:
        uid = _parse_uuid(goal_id)
        if uid is None:
            return None
        return self.session.get(PurchaseGoalModel, uid)

    def get_goal(self, user_id: str, goal_id: str) -> PurchaseGoal | None:
        model = self.get_goal_model(goal_id)
        if model is None or model.user_id != user_id:
            return None
        return goal_to_dto(model)

    def active_goals(self, user_id: str) -> list[PurchaseGoal]:
        stmt = (
            select(PurchaseGoalModel)
            .where(
                PurchaseGoalModel.user_id == user_id,
                PurchaseGoalModel.status == GoalStatus.ACTIVE.value,
            )
            .order_by(PurchaseGoalModel.created_at, PurchaseGoalModel.name)
        )
        return [goal_to_dto(m) for m in self.session.execute(stmt).scalars().all()]
