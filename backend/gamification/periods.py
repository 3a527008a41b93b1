"""
Leaderboard period keys.

A period key names the concrete instance of a scoring window:
``all-time`` for the all-time board, ``YYYY-MM`` for the monthly board and
``YYYY-Www`` for the weekly board.
"""

import datetime
import math
from typing import List, Union

from backend.common.error_handling import InvalidPeriodError
from backend.gamification.models import LeaderboardPeriod

ALL_TIME_KEY = "all-time"

# Refresh order of the boards after a points change
ALL_PERIODS = (LeaderboardPeriod.ALL_TIME, LeaderboardPeriod.MONTHLY, LeaderboardPeriod.WEEKLY)


def allowed_period_tokens() -> List[str]:
    return [period.value for period in LeaderboardPeriod]


def parse_period(value: Union[str, LeaderboardPeriod]) -> LeaderboardPeriod:
    """
    Resolve a period token such as ``all-time``, ``ALL_TIME`` or ``weekly``.

    Raises:
        InvalidPeriodError: If the token names no leaderboard period
    """
    if isinstance(value, LeaderboardPeriod):
        return value
    token = (value or "").strip().lower().replace("-", "_")
    try:
        return LeaderboardPeriod(token)
    except ValueError:
        raise InvalidPeriodError(value, allowed_period_tokens())


def week_number(day: datetime.date) -> int:
    """
    Week of the year, counting the partial week containing 1 January as week 1.

    Weeks start on Sunday.
    """
    first_day = datetime.date(day.year, 1, 1)
    days = (day - first_day).days
    # date.weekday() has Monday == 0; shift to Sunday == 0
    first_weekday = (first_day.weekday() + 1) % 7
    return math.ceil((days + first_weekday + 1) / 7)


def period_key(period: Union[str, LeaderboardPeriod], day: datetime.date) -> str:
    """Key of the period instance containing ``day``."""
    period = parse_period(period)
    if period is LeaderboardPeriod.MONTHLY:
        return f"{day.year}-{day.month:02d}"
    if period is LeaderboardPeriod.WEEKLY:
        return f"{day.year}-W{week_number(day):02d}"
    return ALL_TIME_KEY
