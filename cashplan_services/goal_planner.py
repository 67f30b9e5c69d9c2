"""
cashplan_services.goal_planner -- Periodic surplus allocation to purchase goals.

Responsibility:
    Decide, once per weekly or pay-cycle period, how much of a user's
    surplus to reserve toward each active purchase goal, and record the
    reservations in the funding ledger exactly once per period.

Architecture position:
    Services -- stateful orchestration over engines + injected collaborators.
    Pure calculations (periods, surplus, required per period, greedy
    allocation) live in ``cashplan_engines.goal_allocation``; everything
    stateful comes in through the ports in ``collaborators``.

Invariants enforced:
    - Gates run in order: disabled, shock (mode "apply" only), cooldown,
      no active goals. A gated run is a successful no-op.
    - Idempotency: a run id ``planner:<user>:<cadence>:<period start>`` is
      written at most once. A replayed period is skipped before any
      allocation is computed, and the ledger refuses duplicate
      (run_id, goal_id) pairs.
    - Each cadence allocates no more than its period surplus or the
      configured contribution ceiling. With cadence BOTH the weekly and
      paycheck passes each get their own surplus and ceiling.
    - A goal is marked FUNDED exactly when reserved-before plus the new
      contribution reaches its target.
    - Dry runs and previews never write.

Failure modes:
    - InvalidHorizonError for a negative horizon.
    - Collaborator errors (e.g. LedgerWriteError) propagate unchanged.

Audit relevance:
    Every ledger entry carries the run id and the period bounds, so a
    reservation can always be traced back to the run that made it.
"""

from __future__ import annotations

from datetime import timedelta

from cashplan_config.schema import PlannerConfig
from cashplan_engines.goal_allocation import (
    allocate_contributions,
    build_paycheck_periods,
    build_weekly_periods,
    calculate_required_per_period,
    compute_surplus,
    count_periods_to_target,
    estimate_income_for_period,
)
from cashplan_kernel.domain.clock import Clock, SystemClock
from cashplan_kernel.domain.goals import (
    AllocationResult,
    FundingEntryType,
    FundingLedgerEntry,
    FundingSource,
    GoalCadence,
    GoalPreview,
    GoalStatus,
    PaySchedule,
    PlannerCadence,
    PlannerRunResult,
    PlanningPeriod,
    PreviewWarnings,
    PurchaseGoal,
    ShockMode,
    ShockPolicy,
)
from cashplan_kernel.exceptions import InvalidStrategyError
from cashplan_kernel.logging_config import LogContext, get_logger
from cashplan_kernel.utils.idempotency import build_planner_run_id
from cashplan_services.collaborators import (
    BalanceReadModel,
    FundingLedger,
    GoalStore,
    PayScheduleLookup,
    PlannerRunStore,
    ShockSignalProvider,
    StaticShockSignal,
)

logger = get_logger("services.goal_planner")

# Days per period used to project a funded date for flexible goals
_PROJECTION_DAYS = {GoalCadence.WEEKLY: 7, GoalCadence.PAYCHECK: 30}


class GoalPlanner:
    """
    Allocates surplus to purchase goals and previews future allocations.

    Contract:
        Receives every collaborator, the PlannerConfig and a Clock via
        constructor injection. Never reads configuration or the clock any
        other way.
    Guarantees:
        - ``run_planner`` is safe to call repeatedly; the second call for
          the same period writes nothing.
        - ``preview_planner_for_goal`` is read-only.
    Non-goals:
        - Scheduling. Triggering, debouncing and cron are the caller's job.
        - Releasing reservations when a goal is cancelled.
    """

    def __init__(
        self,
        *,
        balances: BalanceReadModel,
        pay_schedules: PayScheduleLookup,
        ledger: FundingLedger,
        goals: GoalStore,
        runs: PlannerRunStore,
        shock: ShockSignalProvider | None = None,
        config: PlannerConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._balances = balances
        self._pay_schedules = pay_schedules
        self._ledger = ledger
        self._goals = goals
        self._runs = runs
        self._shock: ShockSignalProvider = shock or StaticShockSignal()
        self._config = config or PlannerConfig()
        self._clock = clock or SystemClock()

    @property
    def config(self) -> PlannerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _evaluate_shock(self, user_id: str) -> ShockPolicy | None:
        if self._config.shock_mode == ShockMode.OFF:
            return None
        return self._shock.evaluate(user_id)

    def _shock_blocks(self, policy: ShockPolicy | None) -> bool:
        return (
            policy is not None
            and policy.triggered
            and self._config.shock_mode == ShockMode.APPLY
        )

    def _in_cooldown(self, user_id: str) -> bool:
        if self._config.cooldown_hours <= 0:
            return False
        last_run = self._runs.last_run_at(user_id)
        if last_run is None:
            return False
        return self._clock.now() - last_run < timedelta(hours=self._config.cooldown_hours)

    # ------------------------------------------------------------------
    # Periods and surplus
    # ------------------------------------------------------------------

    def _periods(
        self,
        cadence: GoalCadence,
        schedule: PaySchedule | None,
        horizon_days: int,
    ) -> tuple[PlanningPeriod, ...]:
        today = self._clock.today()
        if cadence == GoalCadence.WEEKLY:
            return build_weekly_periods(today, horizon_days)
        if schedule is None:
            return ()
        return build_paycheck_periods(schedule, today, horizon_days)

    def _surplus(
        self,
        user_id: str,
        cadence: GoalCadence,
        schedule: PaySchedule | None,
        period: PlanningPeriod,
        available_cents: int,
    ) -> int:
        return compute_surplus(
            available_balance_cents=available_cents,
            expected_income_cents=estimate_income_for_period(schedule, cadence),
            obligations_cents=self._balances.obligations_due_cents(
                user_id, period.start, period.end
            ),
            buffer_cents=self._config.buffer_cents,
        )

    # ------------------------------------------------------------------
    # run_planner
    # ------------------------------------------------------------------

    def run_planner(
        self,
        user_id: str,
        cadence: PlannerCadence | GoalCadence | None = None,
        horizon_days: int | None = None,
        dry_run: bool = False,
    ) -> PlannerRunResult:
        """
        Allocate this period's surplus for one user.

        With cadence BOTH, the weekly and paycheck passes are independent:
        each computes its surplus from the same available balance and is
        capped by its own ``max_contribution_cents``, so a single call may
        reserve up to twice that ceiling.

        Args:
            user_id: Whose goals to fund.
            cadence: WEEKLY, PAYCHECK or BOTH. None uses the configured
                default.
            horizon_days: Look-ahead for period construction. None uses
                ``config.lookahead_days``.
            dry_run: Compute allocations without writing anything.

        Returns:
            PlannerRunResult. ``skipped_reason`` is set when a gate stopped
            the run.
        """
        config = self._config
        selected = _as_planner_cadence(cadence or config.default_cadence)
        horizon = config.lookahead_days if horizon_days is None else horizon_days

        with LogContext.bind(user_id=user_id):
            logger.info(
                "planner_run_started",
                extra={
                    "cadence": selected.value,
                    "horizon_days": horizon,
                    "dry_run": dry_run,
                },
            )

            if not config.enabled:
                logger.info("planner_run_skipped", extra={"reason": "disabled"})
                return PlannerRunResult(skipped_reason="disabled")

            shock_policy = self._evaluate_shock(user_id)
            if self._shock_blocks(shock_policy):
                if not dry_run:
                    self._runs.record_run(user_id, self._clock.now())
                logger.warning(
                    "planner_run_skipped",
                    extra={"reason": "shock", "shock_reasons": list(shock_policy.reasons)},
                )
                return PlannerRunResult(shock_policy=shock_policy, skipped_reason="shock")

            if self._in_cooldown(user_id):
                logger.info("planner_run_skipped", extra={"reason": "cooldown"})
                return PlannerRunResult(shock_policy=shock_policy, skipped_reason="cooldown")

            active = [g for g in self._goals.active_goals(user_id) if g.status == GoalStatus.ACTIVE]
            if not active:
                logger.info("planner_run_skipped", extra={"reason": "no_goals"})
                return PlannerRunResult(shock_policy=shock_policy, skipped_reason="no_goals")

            schedule = self._pay_schedules.pay_schedule(user_id)
            allocations: list[AllocationResult] = []
            run_ids: list[str] = []

            for goal_cadence in selected.goal_cadences():
                cadence_goals = [g for g in active if g.cadence == goal_cadence]
                if not cadence_goals:
                    continue
                result = self._run_cadence(
                    user_id, goal_cadence, cadence_goals, schedule, horizon, dry_run
                )
                if result is None:
                    continue
                run_id, cadence_allocations = result
                run_ids.append(run_id)
                allocations.extend(cadence_allocations)

            completed_at = self._clock.now()
            if not dry_run:
                self._runs.record_run(user_id, completed_at)

            logger.info(
                "planner_run_completed",
                extra={
                    "run_ids": run_ids,
                    "allocation_count": len(allocations),
                    "allocated_cents": sum(a.amount_cents for a in allocations),
                    "dry_run": dry_run,
                },
            )
            return PlannerRunResult(
                allocations=tuple(allocations),
                shock_policy=shock_policy,
                run_ids=tuple(run_ids),
                completed_at=completed_at,
            )

    def _run_cadence(
        self,
        user_id: str,
        cadence: GoalCadence,
        goals: list[PurchaseGoal],
        schedule: PaySchedule | None,
        horizon_days: int,
        dry_run: bool,
    ) -> tuple[str, tuple[AllocationResult, ...]] | None:
        periods = self._periods(cadence, schedule, horizon_days)
        if not periods:
            logger.info(
                "planner_cadence_skipped",
                extra={"cadence": cadence.value, "reason": "no_period"},
            )
            return None

        period = periods[0]
        run_id = build_planner_run_id(user_id, cadence, period.start)
        with LogContext.bind(run_id=run_id):
            if self._ledger.has_run(user_id, run_id):
                logger.info(
                    "planner_cadence_skipped",
                    extra={"cadence": cadence.value, "reason": "already_run"},
                )
                return None

            reserved = self._ledger.reserved_by_goal(user_id, [g.id for g in goals])
            surplus = self._surplus(
                user_id,
                cadence,
                schedule,
                period,
                self._balances.available_balance_cents(user_id),
            )
            allocations = allocate_contributions(
                goals=goals,
                reserved_by_goal=reserved,
                cadence=cadence,
                period=period,
                surplus_cents=surplus,
                max_contribution_cents=self._config.max_contribution_cents,
                today=self._clock.today(),
                schedule=schedule,
            )

            if not dry_run and allocations:
                if not self._record(user_id, run_id, period, goals, allocations):
                    logger.info(
                        "planner_cadence_skipped",
                        extra={"cadence": cadence.value, "reason": "concurrent_run"},
                    )
                    return None

        return run_id, allocations

    def _record(
        self,
        user_id: str,
        run_id: str,
        period: PlanningPeriod,
        goals: list[PurchaseGoal],
        allocations: tuple[AllocationResult, ...],
    ) -> int:
        """Write the run's entries and mark goals it completes. Returns rows inserted."""
        entries = [
            FundingLedgerEntry(
                user_id=user_id,
                goal_id=allocation.goal_id,
                amount_cents=allocation.amount_cents,
                entry_type=FundingEntryType.RESERVE,
                source=FundingSource.SURPLUS,
                effective_date=period.start,
                run_id=run_id,
                period_start=period.start,
                period_end=period.end,
                note=period.label,
            )
            for allocation in allocations
        ]
        inserted = self._ledger.append_entries(entries)
        if inserted == 0:
            # Another writer already recorded this run id
            return 0

        targets = {g.id: g.target_amount_cents for g in goals}
        funded: list[str] = []
        for allocation in allocations:
            reached = allocation.reserved_cents_before + allocation.amount_cents
            if reached >= targets[allocation.goal_id]:
                self._goals.mark_funded(allocation.goal_id)
                funded.append(allocation.goal_id)

        logger.info(
            "planner_allocations_recorded",
            extra={
                "entries": len(entries),
                "inserted": inserted,
                "funded_goals": funded,
            },
        )
        return inserted

    # ------------------------------------------------------------------
    # preview_planner_for_goal
    # ------------------------------------------------------------------

    def preview_planner_for_goal(
        self,
        user_id: str,
        goal_id: str,
        horizon_days: int | None = None,
    ) -> GoalPreview | None:
        """
        Simulate the planner over every period in the horizon for one goal.

        All active goals of the goal's cadence compete for each period's
        surplus, exactly as in a real run. Nothing is written.

        Returns:
            GoalPreview, or None when the user has no such goal.
        """
        goal = self._goals.get_goal(user_id, goal_id)
        if goal is None:
            return None

        horizon = self._config.lookahead_days if horizon_days is None else horizon_days
        cadence = goal.cadence

        with LogContext.bind(user_id=user_id):
            shock_policy = self._evaluate_shock(user_id)
            if self._shock_blocks(shock_policy):
                return GoalPreview(
                    goal_id=goal.id,
                    cadence=cadence,
                    horizon_days=horizon,
                    allocations=(),
                    warnings=PreviewWarnings(),
                    shock_policy=shock_policy,
                )

            competing = [
                g
                for g in self._goals.active_goals(user_id)
                if g.cadence == cadence and g.status == GoalStatus.ACTIVE
            ]
            schedule = self._pay_schedules.pay_schedule(user_id)
            periods = self._periods(cadence, schedule, horizon)
            today = self._clock.today()

            goal_ids = [g.id for g in competing]
            if goal.id not in goal_ids:
                goal_ids.append(goal.id)
            reserved = dict(self._ledger.reserved_by_goal(user_id, goal_ids))
            remaining = max(0, goal.target_amount_cents - reserved.get(goal.id, 0))
            required = calculate_required_per_period(
                remaining,
                count_periods_to_target(cadence, goal.target_date, today, schedule),
            )

            available = self._balances.available_balance_cents(user_id)
            goal_allocations: list[AllocationResult] = []
            for period in periods:
                surplus = self._surplus(user_id, cadence, schedule, period, available)
                period_allocations = allocate_contributions(
                    goals=competing,
                    reserved_by_goal=reserved,
                    cadence=cadence,
                    period=period,
                    surplus_cents=surplus,
                    max_contribution_cents=self._config.max_contribution_cents,
                    today=today,
                    schedule=schedule,
                )
                for allocation in period_allocations:
                    reserved[allocation.goal_id] = (
                        reserved.get(allocation.goal_id, 0) + allocation.amount_cents
                    )
                    if allocation.goal_id == goal.id:
                        remaining = max(0, remaining - allocation.amount_cents)
                        goal_allocations.append(allocation)

            warnings = PreviewWarnings()
            if goal.target_date is not None and remaining > 0:
                projected = None
                if goal.flexible_date:
                    periods_needed = -(-remaining // max(1, required))
                    projected = today + timedelta(
                        days=periods_needed * _PROJECTION_DAYS[cadence]
                    )
                warnings = PreviewWarnings(
                    shortfall_cents=remaining,
                    required_per_period_cents=required,
                    projected_funded_date=projected,
                )

            logger.info(
                "planner_preview_completed",
                extra={
                    "goal_id": goal.id,
                    "periods": len(periods),
                    "allocated_cents": sum(a.amount_cents for a in goal_allocations),
                    "shortfall_cents": warnings.shortfall_cents,
                },
            )
            return GoalPreview(
                goal_id=goal.id,
                cadence=cadence,
                horizon_days=horizon,
                allocations=tuple(goal_allocations),
                warnings=warnings,
                shock_policy=shock_policy,
            )


def _as_planner_cadence(cadence: PlannerCadence | GoalCadence | str) -> PlannerCadence:
    if isinstance(cadence, PlannerCadence):
        return cadence
    if isinstance(cadence, GoalCadence):
        return PlannerCadence(cadence.value)
    try:
        return PlannerCadence(str(cadence).strip().lower())
    except ValueError as exc:
        raise InvalidStrategyError(
            cadence, tuple(c.value for c in PlannerCadence)
        ) from exc
