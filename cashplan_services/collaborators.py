"""
cashplan_services.collaborators -- ports the goal planner depends on.

Responsibility:
    Declare the narrow read/write interfaces the planner needs from the
    outside world. Concrete implementations are injected: SQLAlchemy-backed
    ones live in ``cashplan_services.sql_collaborators`` (and the kernel
    services satisfy several ports directly); tests use in-memory fakes.

Architecture position:
    Services -- interface definitions only, zero I/O.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Protocol, runtime_checkable

from cashplan_kernel.domain.goals import (
    FundingLedgerEntry,
    PaySchedule,
    PurchaseGoal,
    ShockActions,
    ShockPolicy,
)


@runtime_checkable
class BalanceReadModel(Protocol):
    """Spendable balance and upcoming obligations for a user."""

    def available_balance_cents(self, user_id: str) -> int: ...

    def obligations_due_cents(self, user_id: str, start: date, end: date) -> int: ...


@runtime_checkable
class PayScheduleLookup(Protocol):
    def pay_schedule(self, user_id: str) -> PaySchedule | None: ...


@runtime_checkable
class FundingLedger(Protocol):
    """
    Append-only goal funding ledger.

    ``append_entries`` must skip (run_id, goal_id) pairs already written.
    """

    def has_run(self, user_id: str, run_id: str) -> bool: ...

    def reserved_by_goal(self, user_id: str, goal_ids: Sequence[str]) -> dict[str, int]: ...

    def append_entries(self, entries: Sequence[FundingLedgerEntry]) -> int: ...


@runtime_checkable
class GoalStore(Protocol):
    def active_goals(self, user_id: str) -> list[PurchaseGoal]: ...

    def get_goal(self, user_id: str, goal_id: str) -> PurchaseGoal | None: ...

    def mark_funded(self, goal_id: str) -> None: ...


@runtime_checkable
class ShockSignalProvider(Protocol):
    """Decides whether the user is in a financial shock right now."""

    def evaluate(self, user_id: str) -> ShockPolicy: ...


@runtime_checkable
class PlannerRunStore(Protocol):
    """Last completed (or shock-skipped) planner run per user."""

    def last_run_at(self, user_id: str) -> datetime | None: ...

    def record_run(self, user_id: str, at: datetime) -> None: ...


class StaticShockSignal:
    """
    Shock provider returning a fixed policy for every user.

    ``StaticShockSignal()`` never triggers. ``StaticShockSignal.triggered_by(
    "income_drop")`` triggers with both actions on.
    """

    def __init__(self, policy: ShockPolicy | None = None) -> None:
        self._policy = policy or ShockPolicy(triggered=False)

    @classmethod
    def triggered_by(cls, *reasons: str) -> StaticShockSignal:
        return cls(
            ShockPolicy(
                triggered=True,
                reasons=tuple(reasons),
                actions=ShockActions(
                    pause_purchase_goals=True,
                    reduce_extra_debt_payments=True,
                ),
            )
        )

    def evaluate(self, user_id: str) -> ShockPolicy:
        return self._policy
