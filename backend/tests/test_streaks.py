"""
Tests for the daily streak tracker.
"""

import datetime

import pytest

from backend.gamification.streaks import StreakTracker, next_streak

TODAY = datetime.date(2025, 6, 4)


def test_first_activity_starts_streak():
    assert next_streak(0, 0, None, TODAY) == {
        "current_streak": 1,
        "longest_streak": 1,
        "last_activity_date": TODAY,
    }


def test_consecutive_day_extends_streak():
    values = next_streak(4, 4, TODAY - datetime.timedelta(days=1), TODAY)

    assert values["current_streak"] == 5
    assert values["longest_streak"] == 5


def test_gap_resets_streak_but_keeps_longest():
    values = next_streak(3, 6, TODAY - datetime.timedelta(days=2), TODAY)

    assert values["current_streak"] == 1
    assert values["longest_streak"] == 6
    assert values["last_activity_date"] == TODAY


def test_same_day_and_future_dates_change_nothing():
    assert next_streak(2, 2, TODAY, TODAY) is None
    assert next_streak(2, 2, TODAY + datetime.timedelta(days=1), TODAY) is None


@pytest.fixture
def tracker(repository, clock):
    return StreakTracker(repository, clock)


@pytest.mark.asyncio
async def test_streak_over_days_with_a_gap(tracker, clock):
    # Day D
    points = await tracker.touch("learner")
    assert points.current_streak == 1
    assert points.last_activity_date == clock.today()

    # Day D+1
    clock.advance(days=1)
    points = await tracker.touch("learner")
    assert points.current_streak == 2
    assert points.longest_streak == 2

    # Nothing on D+2, activity on D+3
    clock.advance(days=2)
    points = await tracker.touch("learner")
    assert points.current_streak == 1
    assert points.longest_streak == 2


@pytest.mark.asyncio
async def test_same_day_touches_count_once(tracker, clock):
    await tracker.touch("learner")
    clock.advance(hours=8)
    points = await tracker.touch("learner")

    assert points.current_streak == 1
    assert points.longest_streak == 1


@pytest.mark.asyncio
async def test_day_boundary_is_midnight(tracker, clock):
    clock.set(datetime.datetime(2025, 6, 4, 23, 59))
    await tracker.touch("learner")

    clock.set(datetime.datetime(2025, 6, 5, 0, 1))
    points = await tracker.touch("learner")

    assert points.current_streak == 2


@pytest.mark.asyncio
async def test_longest_streak_never_below_current(tracker, clock):
    for gap in [1, 1, 1, 3, 1, 1, 1, 1, 5]:
        points = await tracker.touch("learner")
        assert points.longest_streak >= points.current_streak
        clock.advance(days=gap)

    assert points.longest_streak == 5


@pytest.mark.asyncio
async def test_get_streak(tracker, clock):
    assert await tracker.get_streak("learner") == {
        "current_streak": 0,
        "longest_streak": 0,
        "last_activity_date": None,
    }

    await tracker.touch("learner")

    streak = await tracker.get_streak("learner")
    assert streak["current_streak"] == 1
    assert streak["last_activity_date"] == clock.today()
