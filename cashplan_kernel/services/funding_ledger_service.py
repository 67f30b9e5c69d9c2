"""
FundingLedgerService -- append-only, idempotent writes to the goal funding
ledger.

Idempotency is two layers deep:
    1. ``append_entries`` skips any (run_id, goal_id) already present.
    2. UNIQUE (run_id, goal_id) on the table catches a racing writer that
       slipped between the check and the insert. That IntegrityError is an
       idempotent success, not a failure. The batch is flushed inside a
       savepoint, so a conflict discards only this batch and leaves the
       caller's other pending work in the session.

Flush-only: the caller commits.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cashplan_kernel.domain.goals import FundingLedgerEntry
from cashplan_kernel.exceptions import GoalNotFoundError, LedgerWriteError
from cashplan_kernel.logging_config import get_logger
from cashplan_kernel.models.funding_ledger import FundingLedgerEntryModel
from cashplan_kernel.selectors.funding_selector import FundingSelector
from cashplan_kernel.services.base import BaseService

logger = get_logger("services.funding_ledger")


class FundingLedgerService(BaseService[FundingLedgerEntryModel]):
    """Writes funding ledger rows; reads delegate to FundingSelector."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._selector = FundingSelector(session)

    def has_run(self, user_id: str, run_id: str) -> bool:
        return self._selector.has_run(user_id, run_id)

    def reserved_by_goal(self, user_id: str, goal_ids: Sequence[str]) -> dict[str, int]:
        return self._selector.reserved_by_goal(user_id, goal_ids)

    def append_entries(self, entries: Sequence[FundingLedgerEntry]) -> int:
        """
        Append ledger entries, skipping (run_id, goal_id) pairs already
        written.

        Returns:
            Number of rows inserted (0 when every entry was a replay).

        Raises:
            GoalNotFoundError: If an entry names a goal id that is not a UUID.
            LedgerWriteError: On a database error other than a duplicate.
        """
        if not entries:
            return 0

        existing = self._existing_pairs(entries)
        rows: list[FundingLedgerEntryModel] = []
        for entry in entries:
            try:
                goal_uuid = UUID(entry.goal_id)
            except ValueError as exc:
                raise GoalNotFoundError(entry.goal_id) from exc
            if entry.run_id is not None and (entry.run_id, goal_uuid) in existing:
                logger.info(
                    "funding_entry_replay_skipped",
                    extra={"run_id": entry.run_id, "goal_id": entry.goal_id},
                )
                continue
            rows.append(
                FundingLedgerEntryModel(
                    user_id=entry.user_id,
                    goal_id=goal_uuid,
                    amount_cents=entry.amount_cents,
                    entry_type=entry.entry_type.value,
                    source=entry.source.value,
                    effective_date=entry.effective_date,
                    run_id=entry.run_id,
                    period_start=entry.period_start,
                    period_end=entry.period_end,
                    note=entry.note,
                )
            )

        if not rows:
            return 0

        savepoint = self.session.begin_nested()
        try:
            self.session.add_all(rows)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            # Concurrent writer inserted the same run first; only this batch is undone
            savepoint.rollback()
            logger.warning(
                "concurrent_funding_insert_conflict",
                extra={"run_ids": sorted({e.run_id or "" for e in entries})},
            )
            return 0
        except SQLAlchemyError as exc:
            savepoint.rollback()
            raise LedgerWriteError(entries[0].run_id or "", str(exc)) from exc

        logger.info(
            "funding_entries_appended",
            extra={
                "count": len(rows),
                "total_cents": sum(r.amount_cents for r in rows),
                "run_id": rows[0].run_id,
            },
        )
        return len(rows)

    def _existing_pairs(
        self, entries: Sequence[FundingLedgerEntry]
    ) -> set[tuple[str, UUID]]:
        run_ids = {e.run_id for e in entries if e.run_id is not None}
        if not run_ids:
            return set()
        stmt = select(
            FundingLedgerEntryModel.run_id, FundingLedgerEntryModel.goal_id
        ).where(FundingLedgerEntryModel.run_id.in_(run_ids))
        return {(run_id, goal_id) for run_id, goal_id in self.session.execute(stmt).all()}
