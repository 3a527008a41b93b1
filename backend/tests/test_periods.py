"""
Tests for leaderboard period keys.
"""

import datetime

import pytest

from backend.common.error_handling import InvalidPeriodError
from backend.gamification.models import LeaderboardPeriod
from backend.gamification.periods import ALL_TIME_KEY, parse_period, period_key, week_number


@pytest.mark.parametrize("token,expected", [
    ("all-time", LeaderboardPeriod.ALL_TIME),
    ("ALL_TIME", LeaderboardPeriod.ALL_TIME),
    ("all_time", LeaderboardPeriod.ALL_TIME),
    ("Monthly", LeaderboardPeriod.MONTHLY),
    ("weekly", LeaderboardPeriod.WEEKLY),
    (LeaderboardPeriod.WEEKLY, LeaderboardPeriod.WEEKLY),
])
def test_parse_period_accepts_spellings(token, expected):
    assert parse_period(token) is expected


@pytest.mark.parametrize("token", ["daily", "", "all time"])
def test_parse_period_rejects_unknown_tokens(token):
    with pytest.raises(InvalidPeriodError) as exc_info:
        parse_period(token)

    assert exc_info.value.http_status == 400
    assert "weekly" in exc_info.value.details["allowed"]


def test_all_time_key_is_constant():
    assert period_key(LeaderboardPeriod.ALL_TIME, datetime.date(2025, 6, 4)) == ALL_TIME_KEY
    assert period_key("all-time", datetime.date(1999, 1, 1)) == "all-time"


def test_monthly_key_is_zero_padded():
    assert period_key("monthly", datetime.date(2025, 6, 4)) == "2025-06"
    assert period_key("monthly", datetime.date(2025, 12, 31)) == "2025-12"


def test_weekly_key_matches_example():
    # 1 January 2025 is a Wednesday
    assert period_key("weekly", datetime.date(2025, 6, 4)) == "2025-W23"


def test_weeks_start_on_sunday():
    assert week_number(datetime.date(2025, 1, 1)) == 1
    assert week_number(datetime.date(2025, 1, 4)) == 1  # Saturday
    assert week_number(datetime.date(2025, 1, 5)) == 2  # Sunday


def test_partial_last_week_of_leap_year():
    # 1 January 2024 is a Monday and 2024 has 366 days
    assert period_key("weekly", datetime.date(2024, 12, 31)) == "2024-W53"
    assert period_key("weekly", datetime.date(2025, 1, 1)) == "2025-W01"
