"""
Module: cashplan_kernel.models.planner_run
Responsibility: Last completed (or shock-gated) planner run per user, used
    for the cooldown gate.
Architecture position: Kernel > Models.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cashplan_kernel.db.base import Base


class PlannerRunModel(Base):
    """One row per user; ``last_run_at`` is overwritten on every run."""

    __tablename__ = "planner_runs"

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_planner_run_user"),
    )

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)

    last_run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PlannerRun {self.user_id} at {self.last_run_at}>"
