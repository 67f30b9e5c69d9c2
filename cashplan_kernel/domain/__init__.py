"""
Pure domain layer.

Frozen DTOs, enums and calendar/money helpers with no dependency on the ORM,
the database or the wall clock (SystemClock aside).
"""

from cashplan_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from cashplan_kernel.domain.dtos import (
    DatedEvent,
    EventKind,
    Frequency,
    RecurringDefinition,
)
from cashplan_kernel.domain.goals import (
    AllocationResult,
    FundingEntryType,
    FundingLedgerEntry,
    FundingSource,
    GoalCadence,
    GoalPreview,
    GoalProgress,
    GoalStatus,
    PayFrequency,
    PaySchedule,
    PlannerCadence,
    PlannerRunResult,
    PlanningPeriod,
    PreviewWarnings,
    PurchaseGoal,
    ShockActions,
    ShockMode,
    ShockPolicy,
)
from cashplan_kernel.domain.money import (
    cents_to_dollars,
    round_half_up,
    to_cents,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DatedEvent",
    "EventKind",
    "Frequency",
    "RecurringDefinition",
    "AllocationResult",
    "FundingEntryType",
    "FundingLedgerEntry",
    "FundingSource",
    "GoalCadence",
    "GoalPreview",
    "GoalProgress",
    "GoalStatus",
    "PayFrequency",
    "PaySchedule",
    "PlannerCadence",
    "PlannerRunResult",
    "PlanningPeriod",
    "PreviewWarnings",
    "PurchaseGoal",
    "ShockActions",
    "ShockMode",
    "ShockPolicy",
    "cents_to_dollars",
    "round_half_up",
    "to_cents",
]
