"""
Pytest fixtures for the cashplan test suite.

Provides:
- In-memory SQLite sessions (fresh schema per test)
- Deterministic clock
- Structured log capture
- In-memory planner collaborators

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL for the database-backed tests.
  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from collections.abc import Generator
from dataclasses import replace
from datetime import date, datetime, timezone
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from cashplan_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from cashplan_kernel.domain.clock import DeterministicClock
from cashplan_kernel.domain.goals import (
    FundingLedgerEntry,
    GoalStatus,
    PaySchedule,
    PurchaseGoal,
)
from cashplan_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

DEFAULT_DATABASE_URL = "sqlite://"

# Wednesday
PLANNER_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """JSON logging at DEBUG for the whole run."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Each test starts with no bound user, run or plan."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture cashplan logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            simulate(payoff_input)
            logs = captured_logs()
            assert any(r["message"] == "payoff_simulation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("cashplan")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Provide a session over a freshly created schema.

    The engine is module-global in ``cashplan_kernel.db.engine``; it is
    rebuilt for every test and disposed afterwards.
    """
    init_engine_from_url(get_database_url())
    create_tables()
    sess = get_session()
    yield sess
    try:
        sess.rollback()
        sess.close()
        drop_tables()
    finally:
        reset_engine()


# =============================================================================
# Clock fixtures
# =============================================================================


@pytest.fixture
def planner_clock():
    """Clock pinned to 2025-01-01 12:00 UTC."""
    return DeterministicClock(PLANNER_NOW)


@pytest.fixture
def planner_today() -> date:
    return PLANNER_NOW.date()


# =============================================================================
# In-memory planner collaborators
# =============================================================================


class InMemoryBalances:
    def __init__(self, available_cents: int = 0, obligations_cents: int = 0):
        self.available_cents = available_cents
        self.obligations_cents = obligations_cents
        self.obligation_calls: list[tuple[date, date]] = []

    def available_balance_cents(self, user_id: str) -> int:
        return self.available_cents

    def obligations_due_cents(self, user_id: str, start: date, end: date) -> int:
        self.obligation_calls.append((start, end))
        return self.obligations_cents


class InMemoryPaySchedules:
    def __init__(self):
        self.schedules: dict[str, PaySchedule] = {}

    def pay_schedule(self, user_id: str) -> PaySchedule | None:
        return self.schedules.get(user_id)


class InMemoryLedger:
    """Funding ledger keyed by (run_id, goal_id), mirroring the SQL constraint."""

    def __init__(self):
        self.entries: list[FundingLedgerEntry] = []

    def has_run(self, user_id: str, run_id: str) -> bool:
        return any(e.user_id == user_id and e.run_id == run_id for e in self.entries)

    def reserved_by_goal(self, user_id: str, goal_ids) -> dict[str, int]:
        wanted = set(goal_ids)
        totals: dict[str, int] = {}
        for e in self.entries:
            if e.user_id == user_id and e.goal_id in wanted:
                totals[e.goal_id] = totals.get(e.goal_id, 0) + e.amount_cents
        return totals

    def append_entries(self, entries) -> int:
        existing = {(e.run_id, e.goal_id) for e in self.entries}
        inserted = 0
        for entry in entries:
            if entry.run_id is not None and (entry.run_id, entry.goal_id) in existing:
                continue
            self.entries.append(entry)
            existing.add((entry.run_id, entry.goal_id))
            inserted += 1
        return inserted


class InMemoryGoalStore:
    def __init__(self):
        self.goals: dict[str, PurchaseGoal] = {}

    def add(self, goal: PurchaseGoal) -> PurchaseGoal:
        self.goals[goal.id] = goal
        return goal

    def active_goals(self, user_id: str) -> list[PurchaseGoal]:
        return [
            g for g in self.goals.values()
            if g.user_id == user_id and g.status == GoalStatus.ACTIVE
        ]

    def get_goal(self, user_id: str, goal_id: str) -> PurchaseGoal | None:
        goal = self.goals.get(goal_id)
        if goal is None or goal.user_id != user_id:
            return None
        return goal

    def mark_funded(self, goal_id: str) -> None:
        self.goals[goal_id] = replace(self.goals[goal_id], status=GoalStatus.FUNDED)


class InMemoryRunStore:
    def __init__(self):
        self.runs: dict[str, datetime] = {}

    def last_run_at(self, user_id: str) -> datetime | None:
        return self.runs.get(user_id)

    def record_run(self, user_id: str, at: datetime) -> None:
        self.runs[user_id] = at


# =============================================================================
# Collaborator fixtures
# =============================================================================


@pytest.fixture
def balances():
    return InMemoryBalances()


@pytest.fixture
def pay_schedules():
    return InMemoryPaySchedules()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def goal_store():
    return InMemoryGoalStore()


@pytest.fixture
def run_store():
    return InMemoryRunStore()
