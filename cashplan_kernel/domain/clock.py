"""
Injectable time source.

The payoff simulator works only from its ``start_date``; the goal planner
and goal store ask an injected ``Clock``. ``SystemClock`` is the only place
wall-clock time enters the system.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

_DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current instant, timezone-aware."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``advance`` takes ``timedelta`` keyword arguments:
    ``clock.advance(hours=13)``.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or _DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = time

    def advance(self, **delta: float) -> None:
        self._now += timedelta(**delta)
