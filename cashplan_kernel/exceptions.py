"""
Typed exception hierarchy for the cashplan packages.

Ordinary business outcomes (insufficient cash, missed payments, unmet savings
floors, unreachable target dates, gated planner runs) are DATA: warnings,
counters, None results, empty allocation lists. Nothing in this module is
raised for them.

What IS raised is invalid input, and a small set of runtime conditions the
caller cannot treat as a no-op:

    CashplanError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidHorizonError
    |   +-- InvalidStrategyError
    |   +-- InvalidDateError
    |   +-- InvalidAmountError
    |   +-- InvalidRecurrenceError
    |   +-- InvalidPlannerConfigError
    |
    +-- RuntimeConditionError
        +-- GoalNotFoundError
        +-- LedgerWriteError

Every class carries a machine-readable ``code`` class attribute and keeps its
context as attributes so the structured log formatter can emit them.

Category        | Code                      | When Raised
----------------|---------------------------|-----------------------------------
Configuration   | INVALID_HORIZON           | Negative horizon months/days
                | INVALID_STRATEGY          | Unknown payoff strategy / cadence
                | INVALID_DATE              | Unparseable or missing date
                | INVALID_AMOUNT            | Negative or non-integral cents
                | INVALID_RECURRENCE        | Definition lacks a usable anchor
                | INVALID_PLANNER_CONFIG    | Bad planner config value
----------------|---------------------------|-----------------------------------
Runtime         | GOAL_NOT_FOUND            | mark_funded on an unknown goal
                | LEDGER_WRITE_FAILED       | Ledger insert failed (non-dup)
"""


class CashplanError(Exception):
    """Base exception for all cashplan errors."""

    code: str = "CASHPLAN_ERROR"


# Configuration errors: the caller passed something unusable.


class ConfigurationError(CashplanError):
    """Base exception for invalid input or configuration."""

    code: str = "CONFIGURATION_ERROR"


class InvalidHorizonError(ConfigurationError):
    """Horizon length is negative."""

    code: str = "INVALID_HORIZON"

    def __init__(self, horizon: int, unit: str = "months"):
        self.horizon = horizon
        self.unit = unit
        super().__init__(f"Horizon must be >= 0 {unit}, got {horizon}")


class InvalidStrategyError(ConfigurationError):
    """Strategy (or cadence) name is not recognised."""

    code: str = "INVALID_STRATEGY"

    def __init__(self, value: object, allowed: tuple[str, ...] = ()):
        self.value = value
        self.allowed = allowed
        msg = f"Invalid strategy: {value!r}"
        if allowed:
            msg += f" (expected one of {', '.join(allowed)})"
        super().__init__(msg)


class InvalidDateError(ConfigurationError):
    """A date value could not be parsed."""

    code: str = "INVALID_DATE"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Invalid date for {field}: {value!r}")


class InvalidAmountError(ConfigurationError):
    """An amount is negative or not an integral number of cents."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object, reason: str = "must be >= 0"):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid amount for {field}: {value!r} ({reason})")


class InvalidRecurrenceError(ConfigurationError):
    """A recurring definition cannot be expanded."""

    code: str = "INVALID_RECURRENCE"

    def __init__(self, definition_id: str, reason: str):
        self.definition_id = definition_id
        self.reason = reason
        super().__init__(f"Invalid recurrence for {definition_id}: {reason}")


class InvalidPlannerConfigError(ConfigurationError):
    """A planner configuration value is out of range."""

    code: str = "INVALID_PLANNER_CONFIG"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid planner config {field}={value!r}: {reason}")


# Runtime conditions: input was fine, the collaborator state was not.


class RuntimeConditionError(CashplanError):
    """Base exception for runtime conditions raised by collaborators."""

    code: str = "RUNTIME_CONDITION"


class GoalNotFoundError(RuntimeConditionError):
    """Purchase goal with the given id does not exist."""

    code: str = "GOAL_NOT_FOUND"

    def __init__(self, goal_id: str):
        self.goal_id = goal_id
        super().__init__(f"Purchase goal not found: {goal_id}")


class LedgerWriteError(RuntimeConditionError):
    """
    Funding ledger insert failed for a reason other than a duplicate run id.

    Duplicate (run_id, goal_id) inserts are idempotent success and never
    surface as this error.
    """

    code: str = "LEDGER_WRITE_FAILED"

    def __init__(self, run_id: str, reason: str):
        self.run_id = run_id
        self.reason = reason
        super().__init__(f"Ledger write failed for run {run_id}: {reason}")
