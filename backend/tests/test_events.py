"""
Tests for the internal event dispatcher.
"""

import datetime

import pytest

from backend.common.error_handling import EventCycleError
from backend.gamification.events import AchievementCompleted, EventDispatcher, PointsAwarded

COMPLETED_AT = datetime.datetime(2025, 6, 4, 10, 0)


def points_event(amount=5):
    return PointsAwarded(user_id="learner", amount=amount, total_points=amount, source="activity")


@pytest.mark.asyncio
async def test_handlers_run_in_subscription_order():
    dispatcher = EventDispatcher()
    calls = []

    async def first(event):
        calls.append(("first", event.amount))

    async def second(event):
        calls.append(("second", event.amount))

    dispatcher.subscribe(PointsAwarded, first)
    dispatcher.subscribe(PointsAwarded, second)

    await dispatcher.publish(points_event(20))

    assert calls == [("first", 20), ("second", 20)]


@pytest.mark.asyncio
async def test_events_without_subscribers_are_dropped():
    await EventDispatcher().publish(points_event())


@pytest.mark.asyncio
async def test_nested_publish_of_another_event_type_is_allowed():
    dispatcher = EventDispatcher()
    seen = []

    async def credit_reward(event):
        await dispatcher.publish(points_event(event.points))

    async def refresh(event):
        seen.append(event.amount)

    dispatcher.subscribe(AchievementCompleted, credit_reward)
    dispatcher.subscribe(PointsAwarded, refresh)

    await dispatcher.publish(AchievementCompleted(
        user_id="learner", achievement_id="a1", achievement_name="First Steps", points=10,
        completed_at=COMPLETED_AT
    ))

    assert seen == [10]


@pytest.mark.asyncio
async def test_republishing_an_event_being_handled_raises():
    dispatcher = EventDispatcher()

    async def award_more(event):
        await dispatcher.publish(points_event(event.amount + 1))

    dispatcher.subscribe(PointsAwarded, award_more)

    with pytest.raises(EventCycleError) as exc_info:
        await dispatcher.publish(points_event())

    assert exc_info.value.details["event_type"] == "PointsAwarded"
    assert exc_info.value.details["chain"] == ["PointsAwarded"]


@pytest.mark.asyncio
async def test_indirect_cycle_raises():
    dispatcher = EventDispatcher()

    async def points_to_achievement(event):
        await dispatcher.publish(AchievementCompleted(
            user_id=event.user_id, achievement_id="a1", achievement_name="Loop", points=1,
            completed_at=COMPLETED_AT
        ))

    async def achievement_to_points(event):
        await dispatcher.publish(points_event(event.points))

    dispatcher.subscribe(PointsAwarded, points_to_achievement)
    dispatcher.subscribe(AchievementCompleted, achievement_to_points)

    with pytest.raises(EventCycleError):
        await dispatcher.publish(points_event())


@pytest.mark.asyncio
async def test_sequential_publishes_are_independent():
    dispatcher = EventDispatcher()
    seen = []

    async def record(event):
        seen.append(event.amount)

    dispatcher.subscribe(PointsAwarded, record)

    await dispatcher.publish(points_event(1))
    await dispatcher.publish(points_event(2))

    assert seen == [1, 2]
