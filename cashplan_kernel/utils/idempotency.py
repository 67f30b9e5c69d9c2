"""
Planner run identifiers.

A run id scopes one allocation attempt to one user, cadence and period. The
funding ledger stores it on every entry and carries a uniqueness constraint
on (run_id, goal_id), so a replayed run for the same period writes nothing.
"""

from datetime import date

from cashplan_kernel.domain.goals import GoalCadence

RUN_ID_PREFIX = "planner"


def build_planner_run_id(
    user_id: str,
    cadence: GoalCadence,
    period_start: date,
) -> str:
    """
    Build the deterministic run id for a planning period.

    Format: planner:<user_id>:<cadence>:<YYYY-MM-DD>

    Example:
        >>> build_planner_run_id("u1", GoalCadence.WEEKLY, date(2024, 3, 4))
        'planner:u1:weekly:2024-03-04'
    """
    return f"{RUN_ID_PREFIX}:{user_id}:{cadence.value}:{period_start.isoformat()}"


def parse_planner_run_id(run_id: str) -> tuple[str, GoalCadence, date]:
    """
    Split a run id back into (user_id, cadence, period_start).

    User ids may themselves contain colons, so the cadence and date are
    taken from the right.

    Raises:
        ValueError: If the run id is not in planner format.
    """
    prefix, _, rest = run_id.partition(":")
    if prefix != RUN_ID_PREFIX or not rest:
        raise ValueError(f"Invalid planner run id: {run_id}")
    parts = rest.rsplit(":", 2)
    if len(parts) != 3 or not parts[0]:
        raise ValueError(f"Invalid planner run id: {run_id}")
    user_id, cadence, day = parts
    return user_id, GoalCadence(cadence), date.fromisoformat(day)
