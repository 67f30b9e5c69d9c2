"""
Module: cashplan_kernel.models.funding_ledger
Responsibility: Append-only ORM persistence for goal funding entries.
Architecture position: Kernel > Models. May import from db/base.py and
    domain enums only.

Invariants enforced:
    - Idempotency: UNIQUE (run_id, goal_id). A planner run writes at most one
      entry per goal; a racing duplicate fails with IntegrityError, which the
      ledger service treats as success.
    - Append-only: rows are never updated; corrections are new
      ``release`` / ``manual_adjust`` entries.

Failure modes:
    - IntegrityError on duplicate (run_id, goal_id).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cashplan_kernel.db.base import TimestampedBase, UUIDString


class FundingLedgerEntryModel(TimestampedBase):
    """One movement of reserved cents toward (or away from) a goal."""

    __tablename__ = "goal_funding_ledger"

    __table_args__ = (
        UniqueConstraint("run_id", "goal_id", name="uq_funding_run_goal"),
        Index("idx_funding_run_id", "run_id"),
        Index("idx_funding_user_goal_date", "user_id", "goal_id", "effective_date"),
    )

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)

    goal_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_goals.id"),
        nullable=False,
    )

    # Signed: release entries carry negative amounts
    amount_cents: Mapped[int] = mapped_column(nullable=False)

    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)

    source: Mapped[str] = mapped_column(String(20), nullable=False)

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Idempotency key; NULL for manual entries outside a planner run
    run_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)

    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)

    note: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<FundingLedgerEntry {self.entry_type} {self.amount_cents} "
            f"goal={self.goal_id} run={self.run_id}>"
        )
