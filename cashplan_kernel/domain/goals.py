"""
Purchase goals, funding ledger entries and planner result DTOs.

Architecture position:
    Kernel > Domain -- pure, zero I/O. ORM models convert to these at the
    selector/service boundary; the planner only ever sees these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from cashplan_kernel.domain.money import require_cents
from cashplan_kernel.exceptions import InvalidAmountError

DEFAULT_GOAL_PRIORITY = 3


class GoalCadence(str, Enum):
    """How often a purchase goal is funded."""

    WEEKLY = "weekly"
    PAYCHECK = "paycheck"


class PlannerCadence(str, Enum):
    """Cadence selector for a planner run."""

    WEEKLY = "weekly"
    PAYCHECK = "paycheck"
    BOTH = "both"

    def goal_cadences(self) -> tuple[GoalCadence, ...]:
        match self:
            case PlannerCadence.WEEKLY:
                return (GoalCadence.WEEKLY,)
            case PlannerCadence.PAYCHECK:
                return (GoalCadence.PAYCHECK,)
            case PlannerCadence.BOTH:
                return (GoalCadence.WEEKLY, GoalCadence.PAYCHECK)


class GoalStatus(str, Enum):
    """
    Lifecycle of a purchase goal.

    ACTIVE -> FUNDED once cumulative reserved >= target.
    PAUSED and CANCELLED goals receive no allocations.
    """

    ACTIVE = "active"
    PAUSED = "paused"
    FUNDED = "funded"
    CANCELLED = "cancelled"


class PayFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"
    MONTHLY = "monthly"

    @property
    def period_days(self) -> int:
        """Approximate days between paychecks."""
        return _PERIOD_DAYS[self]


_PERIOD_DAYS: dict[PayFrequency, int] = {
    PayFrequency.WEEKLY: 7,
    PayFrequency.BIWEEKLY: 14,
    PayFrequency.SEMIMONTHLY: 15,
    PayFrequency.MONTHLY: 30,
}


class FundingEntryType(str, Enum):
    RESERVE = "reserve"
    RELEASE = "release"
    MANUAL_ADJUST = "manual_adjust"


class FundingSource(str, Enum):
    SURPLUS = "surplus"
    ROUNDUP = "roundup"
    REALLOC = "realloc"
    MANUAL = "manual"


class ShockMode(str, Enum):
    """How the planner reacts to a triggered shock signal."""

    SUGGEST = "suggest"
    APPLY = "apply"
    OFF = "off"


@dataclass(frozen=True)
class PaySchedule:
    frequency: PayFrequency
    next_pay_date: date
    amount_cents: int | None = None


@dataclass(frozen=True)
class PurchaseGoal:
    """A named purchase the user is saving toward."""

    id: str
    user_id: str
    name: str
    cadence: GoalCadence
    target_amount_cents: int
    priority: int = DEFAULT_GOAL_PRIORITY
    target_date: date | None = None
    min_contribution_cents: int | None = None
    max_contribution_cents: int | None = None
    flexible_date: bool = True
    status: GoalStatus = GoalStatus.ACTIVE

    def __post_init__(self) -> None:
        require_cents(f"{self.id}.target_amount_cents", self.target_amount_cents)
        for name in ("min_contribution_cents", "max_contribution_cents"):
            value = getattr(self, name)
            if value is not None:
                require_cents(f"{self.id}.{name}", value)
        if not 1 <= self.priority <= 5:
            raise InvalidAmountError(
                f"{self.id}.priority", self.priority, "must be between 1 and 5"
            )


@dataclass(frozen=True)
class FundingLedgerEntry:
    """
    Append-only record of cents moved toward (or away from) a goal.

    ``run_id`` is the idempotency key: the planner never writes two entries
    for the same (run_id, goal_id).
    """

    user_id: str
    goal_id: str
    amount_cents: int
    entry_type: FundingEntryType
    source: FundingSource
    effective_date: date
    run_id: str | None = None
    period_start: date | None = None
    period_end: date | None = None
    note: str | None = None


@dataclass(frozen=True)
class ShockActions:
    pause_purchase_goals: bool = False
    reduce_extra_debt_payments: bool = False


@dataclass(frozen=True)
class ShockPolicy:
    """Result of a shock evaluation. ``reasons`` are short machine tags."""

    triggered: bool
    reasons: tuple[str, ...] = ()
    actions: ShockActions = field(default_factory=ShockActions)


@dataclass(frozen=True)
class PlanningPeriod:
    """One weekly or pay-cycle window, ``[start, end)``."""

    start: date
    end: date
    label: str


@dataclass(frozen=True)
class AllocationResult:
    """One goal funded in one period."""

    goal_id: str
    amount_cents: int
    period_start: date
    period_end: date
    required_per_period_cents: int
    remaining_cents: int
    reserved_cents_before: int


@dataclass(frozen=True)
class GoalProgress:
    goal_id: str
    reserved_cents: int
    remaining_cents: int


@dataclass(frozen=True)
class PlannerRunResult:
    """
    Outcome of ``run_planner``.

    ``skipped_reason`` is set when a gate short-circuited the run
    ("disabled", "shock", "cooldown", "no_goals"); those are successes with
    zero effect.
    """

    allocations: tuple[AllocationResult, ...] = ()
    shock_policy: ShockPolicy | None = None
    skipped_reason: str | None = None
    run_ids: tuple[str, ...] = ()
    completed_at: datetime | None = None


@dataclass(frozen=True)
class PreviewWarnings:
    shortfall_cents: int | None = None
    required_per_period_cents: int | None = None
    projected_funded_date: date | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.shortfall_cents is None
            and self.required_per_period_cents is None
            and self.projected_funded_date is None
        )


@dataclass(frozen=True)
class GoalPreview:
    goal_id: str
    cadence: GoalCadence
    horizon_days: int
    allocations: tuple[AllocationResult, ...]
    warnings: PreviewWarnings
    shock_policy: ShockPolicy | None = None
