"""
Database-backed tests for the funding ledger, goal store and run store,
and for the planner wired over them.
"""

from datetime import date, timedelta

import pytest

from cashplan_config.schema import PlannerConfig
from cashplan_kernel.domain.dtos import EventKind, Frequency, RecurringDefinition
from cashplan_kernel.domain.goals import (
    FundingEntryType,
    FundingLedgerEntry,
    FundingSource,
    GoalCadence,
    GoalStatus,
    PayFrequency,
    PaySchedule,
    PurchaseGoal,
)
from cashplan_kernel.exceptions import GoalNotFoundError
from cashplan_kernel.selectors.funding_selector import FundingSelector
from cashplan_kernel.services.funding_ledger_service import FundingLedgerService
from cashplan_kernel.services.goal_store_service import GoalStoreService
from cashplan_kernel.services.planner_run_service import PlannerRunService
from cashplan_services.sql_collaborators import (
    DefinitionBalanceReadModel,
    StaticPayScheduleLookup,
    build_sql_goal_planner,
)

USER = "u1"
RUN_ID = "planner:u1:weekly:2025-01-01"
PAYCHECK_RUN_ID = "planner:u1:paycheck:2025-01-01"


@pytest.fixture
def goals(session, planner_clock):
    return GoalStoreService(session, clock=planner_clock)


@pytest.fixture
def funding(session):
    return FundingLedgerService(session)


@pytest.fixture
def bike(goals) -> PurchaseGoal:
    return goals.create_goal(
        PurchaseGoal(
            id="",
            user_id=USER,
            name="Bike",
            cadence=GoalCadence.WEEKLY,
            target_amount_cents=40_000,
        )
    )

@pytest.fixture
def laptop(goals) -> PurchaseGoal:
    return goals.create_goal(
        PurchaseGoal(
            id="",
            user_id=USER,
            name="Laptop",
            cadence=GoalCadence.PAYCHECK,
            target_amount_cents=100_000,
        )
    )


@pytest.fixture
def racing_writer(session, funding, laptop, monkeypatch):
    """Another process has committed the paycheck run; this one cannot see it yet."""
    funding.append_entries([_reserve(laptop.id, 1_000, run_id=PAYCHECK_RUN_ID)])
    session.commit()
    monkeypatch.setattr(FundingLedgerService, "has_run", lambda self, user_id, run_id: False)
    monkeypatch.setattr(FundingLedgerService, "_existing_pairs", lambda self, entries: set())



def _reserve(goal_id: str, amount: int, run_id: str | None = RUN_ID) -> FundingLedgerEntry:
    return FundingLedgerEntry(
        user_id=USER,
        goal_id=goal_id,
        amount_cents=amount,
        entry_type=FundingEntryType.RESERVE,
        source=FundingSource.SURPLUS,
        effective_date=date(2025, 1, 1),
        run_id=run_id,
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 8),
    )


class TestGoalStore:
    def test_create_assigns_uuid(self, goals, bike):
        assert bike.id != ""
        assert goals.get_goal(USER, bike.id) == bike
        assert goals.active_goals(USER) == [bike]

    def test_get_goal_scoped_to_user(self, goals, bike):
        assert goals.get_goal("u2", bike.id) is None
        assert goals.get_goal(USER, "not-a-uuid") is None

    def test_mark_funded(self, goals, bike):
        goals.mark_funded(bike.id)
        assert goals.get_goal(USER, bike.id).status == GoalStatus.FUNDED
        assert goals.active_goals(USER) == []

    def test_mark_unknown_goal(self, goals):
        with pytest.raises(GoalNotFoundError):
            goals.mark_funded("00000000-0000-0000-0000-000000000000")


class TestFundingLedger:
    def test_append_and_sum(self, funding, bike):
        inserted = funding.append_entries([_reserve(bike.id, 5_000)])

        assert inserted == 1
        assert funding.has_run(USER, RUN_ID)
        assert not funding.has_run("u2", RUN_ID)
        assert funding.reserved_by_goal(USER, [bike.id]) == {bike.id: 5_000}

    def test_replay_skipped(self, funding, bike, captured_logs):
        funding.append_entries([_reserve(bike.id, 5_000)])
        assert funding.append_entries([_reserve(bike.id, 5_000)]) == 0
        assert funding.reserved_by_goal(USER, [bike.id]) == {bike.id: 5_000}
        assert any(r["message"] == "funding_entry_replay_skipped" for r in captured_logs())

    def test_manual_entries_not_deduplicated(self, funding, bike):
        funding.append_entries([_reserve(bike.id, 1_000, run_id=None)])
        funding.append_entries([_reserve(bike.id, 1_000, run_id=None)])
        assert funding.reserved_by_goal(USER, [bike.id]) == {bike.id: 2_000}

    def test_concurrent_duplicate_is_idempotent(self, session, funding, bike, monkeypatch):
        funding.append_entries([_reserve(bike.id, 5_000)])
        session.commit()
        # A racing writer: the pre-insert check sees nothing
        monkeypatch.setattr(funding, "_existing_pairs", lambda entries: set())

        assert funding.append_entries([_reserve(bike.id, 5_000)]) == 0
        assert funding.reserved_by_goal(USER, [bike.id]) == {bike.id: 5_000}

    def test_conflict_keeps_pending_rows_of_earlier_batches(
        self, session, funding, bike, laptop, racing_writer, captured_logs
    ):
        funding.append_entries([_reserve(bike.id, 5_000)])

        assert funding.append_entries([_reserve(laptop.id, 2_000, run_id=PAYCHECK_RUN_ID)]) == 0
        session.commit()

        assert funding.reserved_by_goal(USER, [bike.id, laptop.id]) == {
            bike.id: 5_000,
            laptop.id: 1_000,
        }
        assert any(r["message"] == "concurrent_funding_insert_conflict" for r in captured_logs())

    def test_non_uuid_goal(self, funding):
        with pytest.raises(GoalNotFoundError):
            funding.append_entries([_reserve("bike", 5_000)])

    def test_empty_batch(self, funding):
        assert funding.append_entries([]) == 0

    def test_goal_progress(self, session, funding, bike):
        funding.append_entries([_reserve(bike.id, 15_000)])
        progress = FundingSelector(session).goal_progress(bike.id)
        assert progress.reserved_cents == 15_000
        assert progress.remaining_cents == 25_000
        assert FundingSelector(session).reserved_total(USER) == 15_000


class TestPlannerRuns:
    def test_record_and_read(self, session, planner_clock):
        runs = PlannerRunService(session)
        assert runs.last_run_at(USER) is None

        runs.record_run(USER, planner_clock.now())
        assert runs.last_run_at(USER) == planner_clock.now()

        later = planner_clock.now() + timedelta(hours=3)
        runs.record_run(USER, later)
        assert runs.last_run_at(USER) == later


class TestSqlPlanner:
    def test_end_to_end(self, session, goals, bike, planner_clock):
        rent = RecurringDefinition(
            id="rent",
            name="Rent",
            amount_cents=3_000,
            frequency=Frequency.MONTHLY,
            kind=EventKind.BILL,
            day_of_month=5,
        )
        planner = build_sql_goal_planner(
            session,
            balances=DefinitionBalanceReadModel({USER: 28_000}, {USER: [rent]}),
            pay_schedules=StaticPayScheduleLookup({}),
            config=PlannerConfig(cooldown_hours=0),
            clock=planner_clock,
        )

        first = planner.run_planner(USER)
        replay = planner.run_planner(USER)

        assert [(a.goal_id, a.amount_cents) for a in first.allocations] == [(bike.id, 5_000)]
        assert replay.allocations == ()
        assert FundingSelector(session).reserved_by_goal(USER, [bike.id]) == {bike.id: 5_000}
        assert PlannerRunService(session).last_run_at(USER) == planner_clock.now()

    def test_concurrent_paycheck_run_keeps_weekly_reservation(
        self, session, goals, bike, laptop, racing_writer, planner_clock
    ):
        planner = build_sql_goal_planner(
            session,
            balances=DefinitionBalanceReadModel({USER: 25_000}),
            pay_schedules=StaticPayScheduleLookup(
                {USER: PaySchedule(PayFrequency.BIWEEKLY, date(2025, 1, 10), 100_000)}
            ),
            config=PlannerConfig(cooldown_hours=0),
            clock=planner_clock,
        )

        result = planner.run_planner(USER, cadence="both")
        session.commit()

        assert result.run_ids == (RUN_ID,)
        assert [(a.goal_id, a.amount_cents) for a in result.allocations] == [(bike.id, 5_000)]
        assert FundingSelector(session).reserved_by_goal(USER, [bike.id, laptop.id]) == {
            bike.id: 5_000,
            laptop.id: 1_000,
        }
        assert goals.get_goal(USER, laptop.id).status == GoalStatus.ACTIVE

    def test_goal_funded_in_database(self, session, goals, planner_clock):
        goal = goals.create_goal(
            PurchaseGoal(
                id="",
                user_id=USER,
                name="Headphones",
                cadence=GoalCadence.WEEKLY,
                target_amount_cents=4_000,
                target_date=date(2025, 1, 5),
            )
        )
        planner = build_sql_goal_planner(
            session,
            balances=DefinitionBalanceReadModel({USER: 30_000}),
            pay_schedules=StaticPayScheduleLookup({}),
            clock=planner_clock,
        )

        result = planner.run_planner(USER, cadence="weekly")

        assert [a.amount_cents for a in result.allocations] == [4_000]
        assert goals.get_goal(USER, goal.id).status == GoalStatus.FUNDED
        assert goals.active_goals(USER) == []
