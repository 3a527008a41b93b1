"""
Tests for the leaderboard maintainer.

This module contains tests for:
1. Ranking after refreshes, including ties
2. Period rollover
3. Paginated queries with display fields
4. The caller's own rank
"""

import datetime

import pytest

from backend.common.error_handling import InvalidPeriodError, ValidationError
from backend.gamification.leaderboard import NOT_RANKED_MESSAGE, LeaderboardMaintainer
from backend.gamification.locks import LocalRankLock


@pytest.fixture
def maintainer(repository, clock):
    return LeaderboardMaintainer(repository, clock, LocalRankLock(), page_size=2, max_page_size=3)


async def ranks(maintainer, period="all-time"):
    page = await maintainer.get_leaderboard(period, page=1, limit=3)
    return [(entry["user_id"], entry["rank"], entry["points"]) for entry in page["entries"]]


@pytest.mark.asyncio
async def test_refresh_ranks_by_descending_points(maintainer):
    await maintainer.refresh("alice", 50)
    await maintainer.refresh("bob", 120)
    await maintainer.refresh("carol", 80)

    assert await ranks(maintainer) == [("bob", 1, 120), ("carol", 2, 80), ("alice", 3, 50)]


@pytest.mark.asyncio
async def test_refresh_updates_every_period(maintainer):
    await maintainer.refresh("alice", 120)

    for period in ["all-time", "monthly", "weekly"]:
        my_rank = await maintainer.get_my_rank("alice", period)
        assert my_rank["rank"] == 1
        assert my_rank["points"] == 120


@pytest.mark.asyncio
async def test_ties_keep_insertion_order(maintainer):
    await maintainer.refresh("alice", 100)
    await maintainer.refresh("bob", 100)
    await maintainer.refresh("carol", 100)

    assert [user for user, _, _ in await ranks(maintainer)] == ["alice", "bob", "carol"]

    # Bob overtakes, then falls back level with the others
    await maintainer.refresh("bob", 150)
    assert [user for user, _, _ in await ranks(maintainer)] == ["bob", "alice", "carol"]

    await maintainer.refresh("bob", 100)
    assert [user for user, _, _ in await ranks(maintainer)] == ["alice", "bob", "carol"]


@pytest.mark.asyncio
async def test_ranks_are_a_permutation(maintainer):
    totals = {"u1": 30, "u2": 300, "u3": 30, "u4": 5, "u5": 120, "u6": 300}
    for user_id, total in totals.items():
        await maintainer.refresh(user_id, total)

    board = []
    for page in (1, 2):
        result = await maintainer.get_leaderboard("monthly", page=page, limit=3)
        board.extend(result["entries"])

    assert sorted(entry["rank"] for entry in board) == [1, 2, 3, 4, 5, 6]
    by_rank = sorted(board, key=lambda entry: entry["rank"])
    points = [entry["points"] for entry in by_rank]
    assert points == sorted(points, reverse=True)


@pytest.mark.asyncio
async def test_new_month_starts_a_new_board(maintainer, clock):
    await maintainer.refresh("alice", 100)
    await maintainer.refresh("bob", 50)

    clock.set(datetime.datetime(2025, 7, 1, 9, 0))
    await maintainer.refresh("bob", 60)

    july = await maintainer.get_leaderboard("monthly")
    assert july["meta"]["period_key"] == "2025-07"
    assert [(e["user_id"], e["rank"]) for e in july["entries"]] == [("bob", 1)]

    # June entries are kept as they were
    june_alice = await maintainer.repository.get_leaderboard_entry("alice", "monthly", "2025-06")
    june_bob = await maintainer.repository.get_leaderboard_entry("bob", "monthly", "2025-06")
    assert (june_alice.rank, june_alice.points) == (1, 100)
    assert (june_bob.rank, june_bob.points) == (2, 50)

    # The all-time board carries on
    all_time = await ranks(maintainer)
    assert all_time == [("alice", 1, 100), ("bob", 2, 60)]


@pytest.mark.asyncio
async def test_refresh_writes_the_ledger_total_to_every_board(maintainer, repository, clock):
    await repository.get_or_create_user_points("alice")
    await repository.increment_points("alice", 20, 100, "activity", "quiz-passed", "quiz-1")
    await maintainer.refresh("alice", 20)

    # Existing all-time entry, fresh monthly and weekly boards
    clock.advance(days=30)
    await maintainer.refresh("alice", 500)

    for period in ["all-time", "monthly", "weekly"]:
        my_rank = await maintainer.get_my_rank("alice", period)
        assert (my_rank["rank"], my_rank["points"]) == (1, 20)
    weekly = await maintainer.repository.get_leaderboard_entry("alice", "weekly", "2025-W27")
    assert weekly.points == 20

    # A stale total passed later does not lower any board
    await repository.increment_points("alice", 40, 100, "activity", "quiz-passed", "quiz-2")
    await maintainer.refresh("alice", 20)
    for period in ["all-time", "monthly", "weekly"]:
        assert (await maintainer.get_my_rank("alice", period))["points"] == 60


@pytest.mark.asyncio
async def test_leaderboard_page_includes_display_fields(maintainer, users):
    await maintainer.refresh("alice", 10)
    await maintainer.refresh("bob", 20)
    await maintainer.refresh("ghost", 5)

    result = await maintainer.get_leaderboard("weekly", page=1, limit=3)

    assert result["meta"] == {
        "total": 3,
        "page": 1,
        "limit": 3,
        "period": "weekly",
        "period_key": "2025-W23",
    }
    bob, alice, ghost = result["entries"]
    assert (bob["first_name"], bob["last_name"], bob["profile_photo"]) == ("Bob", "Baker", None)
    assert alice["profile_photo"] == "alice.png"
    assert ghost["user_id"] == "ghost"
    assert ghost["first_name"] is None


@pytest.mark.asyncio
async def test_pagination_uses_default_page_size(maintainer):
    for index, user_id in enumerate(["a", "b", "c", "d", "e"]):
        await maintainer.refresh(user_id, 100 - index)

    first = await maintainer.get_leaderboard("all-time")
    third = await maintainer.get_leaderboard("all-time", page=3)

    assert [e["user_id"] for e in first["entries"]] == ["a", "b"]
    assert first["meta"]["limit"] == 2
    assert first["meta"]["total"] == 5
    assert [(e["user_id"], e["rank"]) for e in third["entries"]] == [("e", 5)]


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 2), (1, 0), (1, 4), (-1, 2)])
async def test_out_of_range_pagination_is_rejected(maintainer, page, limit):
    with pytest.raises(ValidationError):
        await maintainer.get_leaderboard("all-time", page=page, limit=limit)


@pytest.mark.asyncio
async def test_unknown_period_is_rejected(maintainer):
    with pytest.raises(InvalidPeriodError):
        await maintainer.get_leaderboard("daily")

    with pytest.raises(InvalidPeriodError):
        await maintainer.get_my_rank("alice", "yearly")


@pytest.mark.asyncio
async def test_my_rank_sentinel_for_unranked_user(maintainer, clock):
    await maintainer.refresh("alice", 100)

    # A week later alice has done nothing this week
    clock.advance(days=7)
    weekly = await maintainer.get_my_rank("alice", "weekly")

    assert weekly["rank"] is None
    assert weekly["points"] == 0
    assert weekly["message"] == NOT_RANKED_MESSAGE
    assert weekly["period_key"] == "2025-W24"

    all_time = await maintainer.get_my_rank("alice")
    assert all_time["period"] == "all_time"
    assert all_time["rank"] == 1
