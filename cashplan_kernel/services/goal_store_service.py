"""
GoalStoreService -- create purchase goals and move them through their
status lifecycle. Flush-only.
"""

from sqlalchemy.orm import Session

from cashplan_kernel.domain.clock import Clock, SystemClock
from cashplan_kernel.domain.goals import GoalStatus, PurchaseGoal
from cashplan_kernel.exceptions import GoalNotFoundError
from cashplan_kernel.logging_config import get_logger
from cashplan_kernel.models.purchase_goal import PurchaseGoalModel
from cashplan_kernel.selectors.funding_selector import FundingSelector, goal_to_dto
from cashplan_kernel.services.base import BaseService

logger = get_logger("services.goal_store")


class GoalStoreService(BaseService[PurchaseGoalModel]):
    """Read/write store for purchase goal status."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._selector = FundingSelector(session)

    def create_goal(self, goal: PurchaseGoal) -> PurchaseGoal:
        """Persist a new goal. ``goal.id`` is ignored; a UUID is assigned."""
        model = PurchaseGoalModel(
            user_id=goal.user_id,
            name=goal.name,
            cadence=goal.cadence.value,
            priority=goal.priority,
            target_amount_cents=goal.target_amount_cents,
            target_date=goal.target_date,
            min_contribution_cents=goal.min_contribution_cents,
            max_contribution_cents=goal.max_contribution_cents,
            flexible_date=goal.flexible_date,
            status=goal.status.value,
            created_at=self._clock.now(),
        )
        self.session.add(model)
        self.session.flush()
        logger.info(
            "purchase_goal_created",
            extra={"goal_id": str(model.id), "user_id": goal.user_id},
        )
        return goal_to_dto(model)

    def active_goals(self, user_id: str) -> list[PurchaseGoal]:
        return self._selector.active_goals(user_id)

    def get_goal(self, user_id: str, goal_id: str) -> PurchaseGoal | None:
        return self._selector.get_goal(user_id, goal_id)

    def mark_funded(self, goal_id: str) -> None:
        """
        Transition a goal to FUNDED.

        Raises:
            GoalNotFoundError: If no goal has this id.
        """
        self.set_status(goal_id, GoalStatus.FUNDED)

    def set_status(self, goal_id: str, status: GoalStatus) -> None:
        model = self._selector.get_goal_model(goal_id)
        if model is None:
            raise GoalNotFoundError(goal_id)
        previous = model.status
        model.status = status.value
        if status == GoalStatus.FUNDED:
            model.funded_at = self._clock.now()
        self.session.flush()
        logger.info(
            "purchase_goal_status_changed",
            extra={"goal_id": goal_id, "from": previous, "to": status.value},
        )
