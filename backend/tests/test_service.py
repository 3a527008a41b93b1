"""
Tests for recording activity through the gamification service.

These tests run the whole engine against a real SQLite database:
points, achievements, streaks and leaderboards together.
"""

import asyncio

import pytest

from backend.common.config import GamificationConfig
from backend.common.error_handling import ValidationError
from backend.gamification.locks import LocalRankLock
from backend.gamification.service import GamificationService, normalize_activity_type


@pytest.mark.parametrize("token", ["quiz-passed", "QUIZ_PASSED", "quiz_passed", " Quiz-Passed "])
def test_activity_spellings_normalize(token):
    assert normalize_activity_type(token) == "quiz_passed"


@pytest.mark.asyncio
async def test_blank_activity_type_earns_default_points(service):
    result = await service.record_activity("learner", "  ", "thing-1")

    assert result.points_awarded == 5
    assert result.achievements_unlocked == []
    assert (await service.get_points("learner")).total_points == 5


@pytest.mark.parametrize("activity,points", [
    ("video-watched", 5),
    ("quiz-passed", 20),
    ("course-completed", 100),
    ("discussion-posted", 10),
    ("review-posted", 15),
    ("webinar-attended", 5),
])
def test_points_table(service, activity, points):
    assert service.points_for(activity) == points


@pytest.mark.asyncio
async def test_quiz_then_course_on_the_same_day(service):
    first = await service.record_activity("learner", "quiz-passed", "quiz-1")

    assert first.points_awarded == 20
    assert first.message == "Earned 20 points!"
    points = await service.get_points("learner")
    assert (points.total_points, points.current_level, points.points_to_next_level) == (20, 1, 80)
    assert points.current_streak == 1

    second = await service.record_activity("learner", "course-completed", "course-1")

    assert second.points_awarded == 100
    assert second.level_up is True
    points = await service.get_points("learner")
    assert (points.total_points, points.current_level, points.points_to_next_level) == (120, 2, 80)
    assert points.current_streak == 1

    for period in ["all-time", "monthly", "weekly"]:
        my_rank = await service.get_my_rank("learner", period)
        assert (my_rank["rank"], my_rank["points"]) == (1, 120)


@pytest.mark.asyncio
async def test_achievement_reward_is_credited_once(seeded_service):
    result = await seeded_service.record_activity("learner", "course-completed", "course-1")

    # 100 for the course plus 100 for Course Beginner
    assert result.points_awarded == 100
    assert result.total_points == 200
    assert result.current_level == 3
    assert len(result.achievements_unlocked) == 1

    again = await seeded_service.record_activity("learner", "course-completed", "course-2")

    assert again.achievements_unlocked == []
    assert again.total_points == 300

    summary = (await seeded_service.get_user_achievements("learner"))["summary"]
    assert summary["total_points"] == 100


@pytest.mark.asyncio
async def test_reward_is_reflected_on_leaderboards(seeded_service):
    await seeded_service.record_activity("learner", "video-watched", "video-1")

    board = await seeded_service.get_leaderboard("weekly")

    assert board["entries"][0]["points"] == 15
    transactions = await seeded_service.get_recent_transactions("learner")
    assert sorted((t.source, t.amount) for t in transactions) == [("achievement", 10), ("activity", 5)]


@pytest.mark.asyncio
async def test_unknown_activity_awards_default_points_and_touches_streak(seeded_service):
    result = await seeded_service.record_activity("learner", "webinar-attended", "webinar-1")

    assert result.points_awarded == 5
    assert result.achievements_unlocked == []
    streak = await seeded_service.get_streak("learner")
    assert streak["current_streak"] == 1


@pytest.mark.asyncio
async def test_streak_across_days(service, clock):
    await service.record_activity("learner", "video-watched", "video-1")
    clock.advance(days=1)
    await service.record_activity("learner", "video-watched", "video-2")
    clock.advance(days=1)
    await service.record_activity("learner", "video-watched", "video-3")

    streak = await service.get_streak("learner")
    assert streak["current_streak"] == 3
    assert streak["longest_streak"] == 3


@pytest.mark.asyncio
async def test_repeat_entities_award_again_by_default(service):
    await service.record_activity("learner", "video-watched", "video-1")
    repeat = await service.record_activity("learner", "video-watched", "video-1")

    assert repeat.duplicate is False
    assert repeat.points_awarded == 5
    assert repeat.total_points == 10


@pytest.mark.asyncio
async def test_repeat_entities_can_be_ignored(session_factory, clock):
    service = GamificationService(
        session_factory=session_factory,
        settings=GamificationConfig(award_repeat_entities=False),
        clock=clock,
        rank_lock=LocalRankLock(),
    )

    await service.record_activity("learner", "video-watched", "video-1")
    repeat = await service.record_activity("learner", "VIDEO_WATCHED", "video-1")
    other = await service.record_activity("learner", "video-watched", "video-2")

    assert repeat.duplicate is True
    assert repeat.points_awarded == 0
    assert repeat.total_points == 5
    assert other.points_awarded == 5
    assert other.total_points == 10


@pytest.mark.asyncio
async def test_missing_entity_id_is_rejected(service):
    with pytest.raises(ValidationError):
        await service.record_activity("learner", "quiz-passed", "")


@pytest.mark.asyncio
async def test_concurrent_learners_get_consistent_ranks(service):
    learners = {f"learner-{index}": index + 1 for index in range(5)}

    async def study(user_id, quizzes):
        for number in range(quizzes):
            await service.record_activity(user_id, "quiz-passed", f"{user_id}-quiz-{number}")

    await asyncio.gather(*(study(user_id, quizzes) for user_id, quizzes in learners.items()))

    board = await service.get_leaderboard("all-time", limit=10)
    assert [e["user_id"] for e in board["entries"]] == [
        "learner-4", "learner-3", "learner-2", "learner-1", "learner-0"
    ]
    assert [e["rank"] for e in board["entries"]] == [1, 2, 3, 4, 5]
    assert [e["points"] for e in board["entries"]] == [100, 80, 60, 40, 20]


@pytest.mark.asyncio
async def test_concurrent_credits_for_one_user_are_not_lost(service):
    await asyncio.gather(*(
        service.record_activity("learner", "discussion-posted", f"post-{index}")
        for index in range(6)
    ))

    points = await service.get_points("learner")
    assert points.total_points == 60
    assert points.current_streak == 1
    my_rank = await service.get_my_rank("learner")
    assert my_rank["points"] == 60
