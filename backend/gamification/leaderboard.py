"""
Leaderboard Maintainer

Keeps the all-time, monthly and weekly boards in step with users' point
totals and answers leaderboard queries.

Every points change re-ranks the whole board it touches. Each re-rank reads
the board, orders it and rewrites the changed ranks in one transaction while
holding that board's rank lock. The cost grows linearly with board size.
"""

from typing import Any, Dict, Optional, Union

from backend.common.clock import Clock, SystemClock
from backend.common.error_handling import ValidationError
from backend.common.logger import app_logger
from backend.gamification.events import PointsAwarded
from backend.gamification.locks import LocalRankLock, RankLock
from backend.gamification.models import LeaderboardPeriod
from backend.gamification.periods import ALL_PERIODS, parse_period, period_key
from backend.gamification.repository import GamificationRepository

logger = app_logger.getChild("gamification.leaderboard")

NOT_RANKED_MESSAGE = "Not ranked yet"


class LeaderboardMaintainer:
    """Owns ``leaderboard_entries``."""

    def __init__(
        self,
        repository: GamificationRepository,
        clock: Optional[Clock] = None,
        rank_lock: Optional[RankLock] = None,
        page_size: int = 50,
        max_page_size: int = 100
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.rank_lock = rank_lock or LocalRankLock()
        self.page_size = page_size
        self.max_page_size = max_page_size

    def current_period_key(self, period: Union[str, LeaderboardPeriod]) -> str:
        return period_key(period, self.clock.today())

    async def refresh(self, user_id: str, total_points: int) -> None:
        """
        Record a user's new total on every board and re-rank them.

        All boards receive the same total. When the user has a ledger row its
        committed total is used, so an out-of-order refresh cannot leave a
        board behind.

        Args:
            user_id: The ID of the user
            total_points: The user's total after the change, used for users
                without a ledger row
        """
        today = self.clock.today()
        for period in ALL_PERIODS:
            key = period_key(period, today)
            await self.repository.upsert_leaderboard_entry(user_id, period.value, key, total_points)
            async with self.rank_lock.hold(period.value, key):
                changed = await self.repository.rerank(period.value, key)
            logger.debug(f"Re-ranked {period.value} board {key}: {changed} ranks changed")

    async def on_points_awarded(self, event: PointsAwarded) -> None:
        await self.refresh(event.user_id, event.total_points)

    async def get_leaderboard(
        self,
        period: Union[str, LeaderboardPeriod],
        page: int = 1,
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        One page of the current board for a period.

        Args:
            period: Period token, e.g. ``all-time``, ``monthly`` or ``weekly``
            page: 1-based page number
            limit: Entries per page

        Returns:
            Dictionary with ``entries`` and ``meta``

        Raises:
            InvalidPeriodError: If the period token is unknown
            ValidationError: If page or limit are out of range
        """
        period = parse_period(period)
        limit = self.page_size if limit is None else limit
        if page < 1:
            raise ValidationError("Page must be at least 1", details={"page": page})
        if limit < 1 or limit > self.max_page_size:
            raise ValidationError(
                f"Limit must be between 1 and {self.max_page_size}",
                details={"limit": limit}
            )

        key = self.current_period_key(period)
        rows, total = await self.repository.get_leaderboard_page(
            period.value, key, offset=(page - 1) * limit, limit=limit
        )

        entries = []
        for entry, user in rows:
            entries.append({
                "user_id": entry.user_id,
                "rank": entry.rank,
                "points": entry.points,
                "first_name": user.first_name if user else None,
                "last_name": user.last_name if user else None,
                "profile_photo": user.profile_photo if user else None,
            })

        return {
            "entries": entries,
            "meta": {
                "total": total,
                "page": page,
                "limit": limit,
                "period": period.value,
                "period_key": key,
            },
        }

    async def get_my_rank(
        self,
        user_id: str,
        period: Union[str, LeaderboardPeriod] = LeaderboardPeriod.ALL_TIME
    ) -> Dict[str, Any]:
        """The user's entry on the current board, or the not-ranked placeholder."""
        period = parse_period(period)
        key = self.current_period_key(period)
        entry = await self.repository.get_leaderboard_entry(user_id, period.value, key)
        if entry is None:
            return {
                "user_id": user_id,
                "period": period.value,
                "period_key": key,
                "rank": None,
                "points": 0,
                "message": NOT_RANKED_MESSAGE,
            }
        return {
            "user_id": user_id,
            "period": period.value,
            "period_key": key,
            "rank": entry.rank,
            "points": entry.points,
            "message": None,
        }
