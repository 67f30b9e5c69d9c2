"""
Module: cashplan_kernel.models.purchase_goal
Responsibility: ORM persistence for purchase goals.
Architecture position: Kernel > Models. May import from db/base.py and
    domain enums only.

Invariants enforced:
    - priority between 1 and 5 (CHECK constraint), default 3.
    - status drawn from GoalStatus; the planner only moves ACTIVE -> FUNDED.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from cashplan_kernel.db.base import TimestampedBase
from cashplan_kernel.domain.goals import (
    DEFAULT_GOAL_PRIORITY,
    GoalCadence,
    GoalStatus,
)


class PurchaseGoalModel(TimestampedBase):
    """A named purchase a user is reserving cash toward."""

    __tablename__ = "purchase_goals"

    __table_args__ = (
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_purchase_goal_priority"),
        CheckConstraint("target_amount_cents >= 0", name="ck_purchase_goal_target"),
        Index("idx_purchase_goal_user_status", "user_id", "status"),
    )

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    cadence: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GoalCadence.WEEKLY.value,
    )

    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=DEFAULT_GOAL_PRIORITY,
    )

    target_amount_cents: Mapped[int] = mapped_column(nullable=False)

    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    min_contribution_cents: Mapped[int | None] = mapped_column(nullable=True)

    max_contribution_cents: Mapped[int | None] = mapped_column(nullable=True)

    flexible_date: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GoalStatus.ACTIVE.value,
    )

    funded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<PurchaseGoal {self.name} {self.status} target={self.target_amount_cents}>"
