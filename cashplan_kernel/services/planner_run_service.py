"""
PlannerRunService -- per-user record of the last planner run, backing the
cooldown gate. Flush-only.
"""

from datetime import datetime, timezone

from sqlalchemy import select

from cashplan_kernel.logging_config import get_logger
from cashplan_kernel.models.planner_run import PlannerRunModel
from cashplan_kernel.services.base import BaseService

logger = get_logger("services.planner_run")


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PlannerRunService(BaseService[PlannerRunModel]):
    """Upserts ``last_run_at`` per user."""

    def last_run_at(self, user_id: str) -> datetime | None:
        row = self._get(user_id)
        return _as_utc(row.last_run_at) if row is not None else None

    def record_run(self, user_id: str, at: datetime) -> None:
        row = self._get(user_id)
        if row is None:
            self.session.add(PlannerRunModel(user_id=user_id, last_run_at=at))
        else:
            row.last_run_at = at
        self.session.flush()
        logger.debug("planner_run_recorded", extra={"user_id": user_id})

    def _get(self, user_id: str) -> PlannerRunModel | None:
        stmt = select(PlannerRunModel).where(PlannerRunModel.user_id == user_id)
        return self.session.execute(stmt).scalar_one_or_none()
