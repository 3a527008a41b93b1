"""
Clock Abstraction

Wall-clock and calendar access for code whose behaviour depends on "today"
(streak day boundaries, leaderboard period keys). Production code uses
SystemClock; tests pin time with FixedClock.
"""

import datetime
from abc import ABC, abstractmethod
from typing import Optional
from zoneinfo import ZoneInfo


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime.datetime:
        """Return the current timestamp."""

    def today(self) -> datetime.date:
        """Return the current calendar date, normalized to midnight."""
        return self.now().date()


class SystemClock(Clock):
    """
    Clock backed by the system time.

    Without a timezone the server's local time is used, which is also where
    the streak day boundary falls.
    """

    def __init__(self, timezone: Optional[str] = None):
        self.timezone = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime.datetime:
        if self.timezone is None:
            return datetime.datetime.now()
        # Stored timestamps are naive; convert to the configured zone's wall time
        return datetime.datetime.now(self.timezone).replace(tzinfo=None)


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, current: datetime.datetime):
        self.current = current

    def now(self) -> datetime.datetime:
        return self.current

    def set(self, current: datetime.datetime) -> None:
        self.current = current

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> datetime.datetime:
        self.current = self.current + datetime.timedelta(days=days, hours=hours, minutes=minutes)
        return self.current
