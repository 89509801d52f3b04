"""
Clock -- injectable time source for the service layer.

Engines never read the clock: ``resolve_discrepancy`` and friends take a
``resolved_at`` argument.  InvoiceTaxService owns a Clock and uses it to
stamp ``matched_at`` on GRN updates and ``resolved_at`` on discrepancy
resolutions, so tests can assert exact timestamps.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current time. ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a fixed instant until moved explicitly.

    Defaults to 2024-01-01 12:00 UTC.  ``advance`` moves it forward,
    ``set_time`` jumps to a new instant.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int | float = 1) -> None:
        self._current = self._current + timedelta(seconds=seconds)
