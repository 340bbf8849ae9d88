"""
Injectable time source.

Services take a Clock in their constructor and stamp ledger entries with
``clock.now()``; nothing in the kernel reads the wall clock directly.
SystemClock is the production implementation, DeterministicClock the one
tests and replays use.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Calendar date of ``now()`` in UTC."""
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Manually driven clock.

    ``now()`` is frozen between calls to ``advance()``, ``tick()`` and
    ``set_time()``, so two entries written without a tick share a timestamp.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move forward one second and return the new time."""
        self.advance()
        return self._current
